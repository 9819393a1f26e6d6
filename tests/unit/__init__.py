"""Unit tests for hsfmt components.

Each module here covers one component: the tokenizer and reader, the rule
passes, the renderer, the linter, configuration, diagnostics, logging and
the worker pool building blocks.

Example:
    # Run all unit tests
    pytest tests/unit/
"""
