from astarte_operator.handlers import astarte, liveness

__all__ = ["astarte", "liveness"]
