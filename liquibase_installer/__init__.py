"""
Liquibase Installer - Cross-Platform Liquibase Setup
Resolves, downloads and installs Liquibase releases with automatic platform detection.
"""

__version__ = "1.2.0"
__author__ = "Liquibase Installer Contributors"
__license__ = "Apache-2.0"

PRODUCT_NAME = "liquibase"

__all__ = ["__version__", "PRODUCT_NAME"]
