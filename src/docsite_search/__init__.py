"""Documentation site search: index builder, scheduler and query gateway."""

__version__ = "1.0.0"
