"""dotstrap — idempotent workstation bootstrap for dotfiles."""

__version__ = "0.1.0"
