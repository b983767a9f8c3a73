# SPDX-License-Identifier: MIT
"""Core data model: options, flags, environments, targets and versions."""
