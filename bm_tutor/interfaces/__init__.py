"""
Interfaces module - User-facing boundaries for the BM Tutor.

This module provides:
1. CLI interface for interactive terminal use
2. JSON web API using FastAPI
"""
