"""Command modules for the regroup CLI."""

from __future__ import annotations

from regroup.commands.replace import run_replace

__all__ = ['run_replace']
