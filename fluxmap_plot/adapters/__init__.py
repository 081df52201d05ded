from .normalize import coerce_distributions, coerce_points, require_finite

__all__ = ["coerce_distributions", "coerce_points", "require_finite"]
