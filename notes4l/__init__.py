"""Parse N4L notes into an in-memory semantic spacetime graph and analyse it."""

__version__ = "0.1.0"