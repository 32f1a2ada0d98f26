"""Snakes & Ladders language-practice session engine."""

__version__ = "0.1.0"
