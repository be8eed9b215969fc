"""Claude Usage: macOS menu-bar monitor for Claude plan usage limits."""

__version__ = '1.0.0'
