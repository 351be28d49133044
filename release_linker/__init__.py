"""Link GitHub releases to the Linear issues of the pull requests they ship."""

__version__ = "0.1.0"
