TEMP_PATH = "./assets/temp"
NET_PATH = "./assets/net"
RESULT_PATH = "./assets/result"
LOG_PATH = "./assets/log"

# upper bound on the population of a single city
MAX_SIZE: int = 15

# "directional" or "symmetric"
COMPATIBILITY_MODE: str = "directional"

MEMOIZATION: bool = True
# "always" caches every result, "exhausted" only results not cut off by the caller's bound
MEMO_POLICY: str = "always"
TABLE_MAX_ENTRIES: int = 200_000_000

# pass best-1 to the child search so the returned depth is the exact minimax value
EXACT_BOUNDS: bool = False

# rotate the pending queues back after a scan stops early; off keeps the rotation left by the cut
RESTORE_ORDER: bool = False

# default cities for the command line: comma separated ring sizes
CITY_A_RINGS: list[int] = [5]
CITY_B_RINGS: list[int] = [5]

LOGGING_LEVEL: str = "INFO"
