"""
Common building blocks shared by the response cache and the ledger format
classifier.

This package contains reusable, domain-agnostic code:

- configuration loading (environment variables)
- logging configuration
- retry/backoff helpers
- an OpenAI-compatible chat completion mixin
- an owned, stoppable background loop
"""
