"""Learning methods: encode raw samples, decode predictions, train with one-cycle."""

__version__ = "0.0.1"
