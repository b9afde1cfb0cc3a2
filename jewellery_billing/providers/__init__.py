from . import base, rates_api

__all__ = [
	"base",
	"rates_api",
]
