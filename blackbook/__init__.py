"""BlackBook: live price-direction betting engine for prediction markets."""

__version__ = "0.1.0"
__author__ = "BlackBook Team"

# Settings live in blackbook.config; importing them here would cycle through blackbook.betting
__all__ = ["__version__", "__author__"]
