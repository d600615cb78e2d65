from src.validation.backtesting import structural_issues, validate_backtesting_response

__all__ = [
    "structural_issues",
    "validate_backtesting_response",
]
