"""
Exceptions raised by repocrawler.
"""


class ConfigurationError(Exception):
    """Raised when a crawler cannot be set up for a repository or config."""
    pass


class CollaboratorFailure(Exception):
    """Base for errors raised by extractors, history providers and stores."""
    pass


class GitCommandError(CollaboratorFailure):
    """Raised when a git invocation fails or times out."""

    def __init__(self, command, returncode=None, stderr=""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        if returncode is None:
            super().__init__(f"git command timed out: {' '.join(command)}")
        else:
            super().__init__(f"git command failed ({returncode}): {' '.join(command)}: {detail}")


class StoreError(CollaboratorFailure):
    """Raised when the project store cannot read or persist records."""
    pass
