"""
repocrawler - syncs license, description and commit history from source
repositories into tracked projects.
"""
