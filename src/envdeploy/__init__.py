"""envdeploy - roll one Helm chart out to several local kind environments."""

__version__ = "0.1.0"
