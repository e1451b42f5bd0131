"""
Common building blocks shared by the extraction client.

This package contains reusable, domain-agnostic code:

- configuration loading (environment variables)
- logging configuration
"""
