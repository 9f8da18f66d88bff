"""Instructor-facing study analytics backend."""
