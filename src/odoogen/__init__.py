"""LLM-driven generation and repair pipeline for Odoo modules."""

__version__ = "0.3.0"
