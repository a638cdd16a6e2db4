"""Storefront checkout backend: signed calculator submissions to draft orders."""
