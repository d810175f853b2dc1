"""
zk-backup Test Suite.

This package contains:
- unit/: Unit tests (temporary directories only)
- integration/: Full backup runs through BackupTool and the CLI
"""
