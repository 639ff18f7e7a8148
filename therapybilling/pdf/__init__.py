from .renderer import PDF

__all__ = ["PDF"]
