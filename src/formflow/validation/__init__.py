from formflow.validation.engine import is_valid, validate

__all__ = ["is_valid", "validate"]
