"""
Version control system (VCS) integration.

Contains the :class:`GitClient`, which reads the HEAD commit that is
handed to the language model.
"""

from .git_client import GitClient  # noqa: F401
