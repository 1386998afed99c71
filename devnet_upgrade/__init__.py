"""
Devnet Upgrade - Resumable validator network upgrade bookkeeping

Tracks the stage of an in-flight chain upgrade (binary switch, optionally
gated by a governance vote) in a checksummed, lock-protected state file, and
reconciles that saved stage against live chain observations so an interrupted
upgrade always resumes from a stage that can be trusted.
"""

__version__ = "0.1.0"
__author__ = "Devnet Upgrade Team"
