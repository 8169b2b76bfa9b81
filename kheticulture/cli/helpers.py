"""Shared helper functions for CLI commands."""

import argparse
import json
import math
import re
from typing import Any


def validate_input(value: str, field_name: str, max_length: int = 1000) -> str:
    """Validate and sanitize CLI inputs."""
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    if len(value) > max_length:
        raise ValueError(f"{field_name} too long (max {max_length} characters)")

    # Remove null bytes and control characters except newlines
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=2, default=str))


def positive_int(value: str) -> int:
    """argparse type for worker counts and durations."""
    try:
        ivalue = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected an integer, got '{value}'")
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"Must be positive, got {ivalue}")
    return ivalue


def positive_amount(value: str) -> float:
    """argparse type for wages."""
    try:
        fvalue = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a number, got '{value}'")
    if not math.isfinite(fvalue) or fvalue <= 0:
        raise argparse.ArgumentTypeError(f"Must be a positive amount, got {value}")
    return fvalue
