"""repo-doctor - repository health checker for local git repositories."""

__version__ = "1.0.0"
