"""
Utils module - Shared utilities for prompt-forge

This module provides common utilities used across the project:
- logging_helper: Consistent logging setup
- text_processing: Normalization, word counts and snippets
- io_helpers: File I/O with proper encoding, prompt batch loading
- config: Analysis/rewriter settings and provider configuration
- llm_client: Uniform async client over the supported providers
"""
