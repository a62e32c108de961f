# pyre-unsafe
import logging
import os
import ctypes
import sys
from typing import Any, Callable, List, Optional, Sequence

import cv2
from joblib import Parallel, delayed, parallel_backend


logger: logging.Logger = logging.getLogger(__name__)


def parallel_map(
    func: Callable[[Any], Any],
    args: Sequence[Any],
    num_proc: int,
    max_batch_size: int = 1,
) -> List[Any]:
    """Run function for all arguments using multiple threads."""
    # De-activate/Restore any inner OpenCV threading
    threads_used = cv2.getNumThreads()
    cv2.setNumThreads(0)

    num_proc = min(num_proc, len(args))
    try:
        if num_proc <= 1:
            res = list(map(func, args))
        else:
            with parallel_backend("threading", n_jobs=num_proc):
                batch_size = max(1, int(len(args) / (num_proc * 2)))
                batch_size = (
                    min(batch_size, max_batch_size) if max_batch_size else batch_size
                )
                res = Parallel(batch_size=batch_size)(
                    delayed(func)(arg) for arg in args
                )
    finally:
        cv2.setNumThreads(threads_used)
    return res


# Memory usage

if sys.platform == "win32":

    class MEMORYSTATUSEX(ctypes.Structure):
        _fields_ = [
            ("dwLength", ctypes.c_ulong),
            ("dwMemoryLoad", ctypes.c_ulong),
            ("ullTotalPhys", ctypes.c_ulonglong),
            ("ullAvailPhys", ctypes.c_ulonglong),
            ("ullTotalPageFile", ctypes.c_ulonglong),
            ("ullAvailPageFile", ctypes.c_ulonglong),
            ("ullTotalVirtual", ctypes.c_ulonglong),
            ("ullAvailVirtual", ctypes.c_ulonglong),
            ("sullAvailExtendedVirtual", ctypes.c_ulonglong),
        ]

        def __init__(self) -> None:
            # have to initialize this to the size of MEMORYSTATUSEX
            self.dwLength = ctypes.sizeof(self)
            super(MEMORYSTATUSEX, self).__init__()

    def memory_available() -> Optional[int]:
        """Available memory in MB.

        Only works on Windows
        """
        stat = MEMORYSTATUSEX()
        ctypes.windll.kernel32.GlobalMemoryStatusEx(ctypes.byref(stat))
        return int(stat.ullAvailPhys / 1024 / 1024)

else:

    def memory_available() -> Optional[int]:
        """Available memory in MB.

        Only works on linux and returns None otherwise.
        """
        with os.popen("free -t -m") as fp:
            lines = fp.readlines()
        if len(lines) < 2:
            return None
        available_mem = int(lines[1].split()[6])
        return available_mem


def processes_that_fit_in_memory(desired: int, per_process: int) -> int:
    """Amount of parallel processes that fit in memory."""
    available_mem = memory_available()
    if available_mem is not None:
        fittable = max(1, int(available_mem / per_process))
        return min(desired, fittable)
    else:
        return desired
