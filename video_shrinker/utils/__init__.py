"""
Utilities Package for the Video Shrinker Application.

Modules:
    - format_utils.py: Human-readable sizes and durations, and size-string parsing.
    - tool_verifier.py: Start-up verification of the external tools.
"""
