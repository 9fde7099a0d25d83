"""Shared types, interfaces, math, clocks and logging."""
