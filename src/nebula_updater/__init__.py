"""Nebula updater.

A polling update client for nebula-standalone: trust-on-first-use TUF
bootstrap, verified manifest resolution, operator consent, authenticated
artifact download and independent digest verification.
"""

__version__ = "0.1.0"
