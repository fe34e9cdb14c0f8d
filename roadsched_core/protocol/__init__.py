"""RoadSched Protocol Module - Argument Encoding.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from roadsched_core.protocol.args import JobArgs, Named, Positional, canonical_dumps

__all__ = ["JobArgs", "Named", "Positional", "canonical_dumps"]
