"""
prompt-forge - prompt quality analysis and rewriting

    from promptforge import analyze, rewrite
    evaluation = analyze("로그인 기능 만들어줘")
    candidates = await rewrite("로그인 기능 만들어줘", evaluation)
"""

from promptforge.core.engine import analyze, classify_prompt, rewrite

__version__ = "0.1.0"

__all__ = ['analyze', 'classify_prompt', 'rewrite', '__version__']
