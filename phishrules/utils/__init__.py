"""Shared helpers for phishrules."""
