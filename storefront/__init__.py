"""Shopping cart service for a multi-shop storefront"""

__version__ = "1.0.0"
