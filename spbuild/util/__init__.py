# SPDX-License-Identifier: MIT
"""Process and filesystem helpers."""
