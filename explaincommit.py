#!/usr/bin/env python
"""
Thin wrapper script to invoke the commit_explainer CLI.

Running ``python explaincommit.py`` is equivalent to running the
``explain-commit`` console script installed via ``pyproject.toml``.
"""

from commit_explainer.cli import main


if __name__ == "__main__":
    main(prog_name="explain-commit")
