"""Novel continuation generator: analysis, outline, breakdown and chapter writing."""

__version__ = "0.1.0"
