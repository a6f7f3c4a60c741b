"""
Security utility for sanitizing sensitive data in logs and errors
Keeps portal API keys and indexing-service dataset keys out of logs
"""

import re

# Patterns to detect and redact sensitive data
SENSITIVE_PATTERNS = [
    (re.compile(r'(kb_[a-zA-Z0-9_\-]{32,})'), 'kb_***REDACTED***'),  # Portal API keys
    (re.compile(r'(dataset-[a-zA-Z0-9]{16,})'), 'dataset-***REDACTED***'),  # Indexing dataset keys
    (re.compile(r'(Bearer\s+[a-zA-Z0-9_\-\.]+)'), 'Bearer ***REDACTED***'),
]


def sanitize_string(text: str) -> str:
    """Remove sensitive patterns from string"""
    if not isinstance(text, str):
        return text

    sanitized = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized


def get_safe_api_key_display(api_key: str) -> str:
    """
    Get safe version of API key for logging (only prefix)

    Args:
        api_key: Full API key

    Returns:
        Safe display string (e.g., "kb_abc123def...***")
    """
    if not api_key or not isinstance(api_key, str):
        return "***INVALID***"

    if len(api_key) < 12:
        return "***REDACTED***"

    return f"{api_key[:12]}...***"
