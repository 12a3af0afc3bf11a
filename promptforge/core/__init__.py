"""
Core module - Analysis and rewrite engine for prompt-forge

This module contains the core functionality organized by stage:
- features / patterns: raw signal extraction
- classifier: intent and task-category classification
- golden: GOLDEN scoring, guideline evaluation and anti-patterns
- rewriting: template candidates and AI-assisted rewrites
- engine: the public analyze() / rewrite() entry points
"""
