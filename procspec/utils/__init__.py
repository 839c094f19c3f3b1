from procspec.utils import logging

__all__ = ("logging",)
