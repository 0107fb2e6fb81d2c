"""
Repository backends implementing the crawler capabilities.

- GitRepoCrawler: git working copies read through the git binary
- NullRepoCrawler: fallback extracting nothing
"""
