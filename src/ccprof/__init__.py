"""ccprof - swappable configuration profiles for Claude Code

Philosophy:
- Never destroy user data: back up before replacing anything
- Symlinks, not copies: the live config always points into a profile
- Brick architecture (self-contained modules)
- Fail fast with helpful guidance

ccprof keeps named bundles of ~/.claude components (settings.json, agents/,
hooks/, commands/) under ~/.claude-profiles and switches between them by
repointing the live paths.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
