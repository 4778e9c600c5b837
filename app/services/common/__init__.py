"""
Common utilities shared across verification and orchestration modules.

Modules:
    - text_cleaner: Input text sanitization
    - url_helpers: URL validation and parsing
"""
