"""Coverage, consistency and diagram tooling for generated SysML model corpora."""

__version__ = "0.1.0"
