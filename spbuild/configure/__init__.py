# SPDX-License-Identifier: MIT
"""Build host detection and compiler probing."""
