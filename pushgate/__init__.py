"""pushgate - signature and branch policy enforcement for git pushes."""

__version__ = "0.3.0"
