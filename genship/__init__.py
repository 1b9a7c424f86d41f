"""genship: prompt-to-code generation, validation and delivery."""

__version__ = "0.1.0"
