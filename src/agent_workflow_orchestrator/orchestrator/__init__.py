"""Workflow orchestration components.

Provides:
- Settings loaded from .env
- Structured logging
- A small CLI surface
- The node-graph engine, progress sinks and local execution history
"""
