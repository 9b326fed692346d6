"""Queries about the process the plugins run in."""

import ctypes
import os
import sys


class UserRoleService:
    """Reports whether the current process runs with elevated privileges.

    Binding a wildcard listener on a well-known port needs root on
    POSIX systems and an administrator token on Windows.
    """

    @property
    def is_admin(self) -> bool:
        if sys.platform == "win32":
            try:
                return bool(ctypes.windll.shell32.IsUserAnAdmin())
            except (AttributeError, OSError):
                return False
        return os.geteuid() == 0
