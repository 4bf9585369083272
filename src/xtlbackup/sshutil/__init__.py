"""xtlbackup: xtlbackup/sshutil/__init__.py."""
