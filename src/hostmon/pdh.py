"""Minimal ctypes binding for a Windows PDH processor-time query."""

import ctypes
from ctypes import wintypes

PDH_HQUERY = ctypes.c_void_p
PDH_HCOUNTER = ctypes.c_void_p

PDH_CSTATUS_VALID_DATA = 0x00000000
PDH_CSTATUS_NEW_DATA = 0x00000001

PROCESSOR_TIME_PATH = "\\Processor(_Total)\\% Processor Time"


class PDH_RAW_COUNTER(ctypes.Structure):
    """Raw counter value as returned by PdhGetRawCounterValue."""

    _fields_ = [
        ("CStatus", wintypes.DWORD),
        ("TimeStamp", wintypes.FILETIME),
        ("FirstValue", ctypes.c_longlong),
        ("SecondValue", ctypes.c_longlong),
        ("MultiCount", wintypes.DWORD),
    ]


class PdhError(OSError):
    """A PDH call returned a non-success status."""

    def __init__(self, call: str, status: int) -> None:
        super().__init__(f"{call} failed with status 0x{status & 0xFFFFFFFF:08X}")
        self.call = call
        self.status = status


def _load_pdh() -> ctypes.CDLL:
    """Load pdh.dll and declare the signatures used here."""
    pdh = ctypes.WinDLL("pdh", use_last_error=True)
    pdh.PdhOpenQueryW.argtypes = [
        wintypes.LPCWSTR,
        ctypes.c_void_p,
        ctypes.POINTER(PDH_HQUERY),
    ]
    pdh.PdhOpenQueryW.restype = wintypes.DWORD
    pdh.PdhAddEnglishCounterW.argtypes = [
        PDH_HQUERY,
        wintypes.LPCWSTR,
        ctypes.c_void_p,
        ctypes.POINTER(PDH_HCOUNTER),
    ]
    pdh.PdhAddEnglishCounterW.restype = wintypes.DWORD
    pdh.PdhCollectQueryData.argtypes = [PDH_HQUERY]
    pdh.PdhCollectQueryData.restype = wintypes.DWORD
    pdh.PdhGetRawCounterValue.argtypes = [
        PDH_HCOUNTER,
        ctypes.POINTER(wintypes.DWORD),
        ctypes.POINTER(PDH_RAW_COUNTER),
    ]
    pdh.PdhGetRawCounterValue.restype = wintypes.DWORD
    pdh.PdhCloseQuery.argtypes = [PDH_HQUERY]
    pdh.PdhCloseQuery.restype = wintypes.DWORD
    return pdh


class ProcessorTimeQuery:
    """
    Long-lived PDH query over total processor time.

    Reads the raw counter rather than the formatted value, so the caller
    sees cumulative idle time against the 100ns timebase and computes
    utilization from two reads itself.
    """

    def __init__(self, path: str = PROCESSOR_TIME_PATH) -> None:
        """
        Open the query and add the counter.

        Raises:
            PdhError: If the query or counter cannot be created.
            OSError: If the PDH library cannot be loaded.
        """
        self._pdh = _load_pdh()
        self._query = PDH_HQUERY()
        self._counter = PDH_HCOUNTER()

        status = self._pdh.PdhOpenQueryW(None, None, ctypes.byref(self._query))
        if status != 0:
            raise PdhError("PdhOpenQueryW", status)

        status = self._pdh.PdhAddEnglishCounterW(
            self._query, path, None, ctypes.byref(self._counter)
        )
        if status != 0:
            self._pdh.PdhCloseQuery(self._query)
            raise PdhError("PdhAddEnglishCounterW", status)

    def read(self) -> tuple[int, int]:
        """
        Collect the query and return ``(idle_time, timebase)``.

        Raises:
            PdhError: If collection fails or the counter has no valid data.
        """
        status = self._pdh.PdhCollectQueryData(self._query)
        if status != 0:
            raise PdhError("PdhCollectQueryData", status)

        raw = PDH_RAW_COUNTER()
        counter_type = wintypes.DWORD()
        status = self._pdh.PdhGetRawCounterValue(
            self._counter, ctypes.byref(counter_type), ctypes.byref(raw)
        )
        if status != 0:
            raise PdhError("PdhGetRawCounterValue", status)
        if raw.CStatus not in (PDH_CSTATUS_VALID_DATA, PDH_CSTATUS_NEW_DATA):
            raise PdhError("PdhGetRawCounterValue", raw.CStatus)

        return int(raw.FirstValue), int(raw.SecondValue)

    def close(self) -> None:
        """Release the query handle."""
        if self._query:
            self._pdh.PdhCloseQuery(self._query)
            self._query = PDH_HQUERY()
