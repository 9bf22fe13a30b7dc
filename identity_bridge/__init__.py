"""Client for an OpenID Connect identity provider with signed request and webhook support."""

__version__ = "0.1.0"
