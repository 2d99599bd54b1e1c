"""wenyan-lsp package root."""

from wenyan_lsp.exceptions import WenyanError, WenyanLspError

__all__ = ["__version__", "WenyanError", "WenyanLspError"]

__version__ = "0.1.0"
