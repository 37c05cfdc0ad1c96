"""Test suite for formstage.

This package contains tests for:
- Nested value access (dotted and subscripted names)
- Query adaptation and submission detection
- Built-in processors, the processor registry and ``when`` conditions
- The processing pipeline (stage order, gating, fault isolation, valid names)
- Form accessors, cloning and definition building
"""
