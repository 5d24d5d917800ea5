"""GreenBook AAR core: hierarchical access resolution and rule-based AAR insights."""

__version__ = "1.0.0"
