"""
Row-parallel evaluation of grid passes.

Every dense pass in this package (inverse-projecting a raster, forward
projecting a grid, computing distortion) is independent per row: a row
reads the immutable configured projection and writes only its own slice
of the output. `map_rows` runs such a pass serially or on a thread pool.
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

from common.logging_config import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


def map_rows(
    row_function: Callable[[int], None],
    n_rows: int,
    workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None
) -> None:
    """Call ``row_function(i)`` for every row index.

    Parameters
    ----------
    row_function : callable
        Fills row ``i`` of the caller's output arrays.
    n_rows : int
        Number of rows.
    workers : int, optional
        Thread count. None or 1 runs the rows in order on the calling thread.
    progress : callable, optional
        Called as ``progress(completed, n_rows)`` after each row finishes.

    Raises
    ------
    Exception
        The first exception raised by a row is re-raised once the pool has
        shut down.
    """
    if n_rows <= 0:
        return

    start_time = time.time()

    if workers is None or workers <= 1:
        for i in range(n_rows):
            row_function(i)
            if progress is not None:
                progress(i + 1, n_rows)
        logger.debug(f"Evaluated {n_rows} rows serially in {time.time() - start_time:.2f}s")
        return

    effective_workers = min(workers, n_rows)
    completed = 0
    with ThreadPoolExecutor(max_workers=effective_workers) as executor:
        futures = {executor.submit(row_function, i): i for i in range(n_rows)}
        for future in as_completed(futures):
            future.result()
            completed += 1
            if progress is not None:
                progress(completed, n_rows)

    logger.debug(
        f"Evaluated {n_rows} rows on {effective_workers} threads "
        f"in {time.time() - start_time:.2f}s"
    )
