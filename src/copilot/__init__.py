"""
Upstate Home Copilot - an assistant for managing a second home.

Core infrastructure: configuration, LLM access, the property store, and
the CLI. The onboarding conversation lives in the `onboarding` package.
"""

__version__ = "0.1.0"
