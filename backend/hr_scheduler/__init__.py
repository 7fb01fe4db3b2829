"""Timezone-aware availability and booking engine for the HR assistant."""

__version__ = "1.0.0"
