from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from ..api import results as results_api
from ..api import scenarios as scenarios_api
from ..api.client import ApiClient, ApiClientError, ApiError
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import FetchErrorRecord
from ..models.metric import CalculationBasis
from ..models.resolution import (
    DataSourceState,
    ResolvedResults,
    ResolvedScenarios,
    ResultsQuery,
)
from ..models.result_row import ResultSet
from .fallback import fallback_results, fallback_scenarios
from .transform import transform_npv_results, transform_study_results

"""Data source resolution: live backend rows or the fallback dataset.

resolve() never raises for network problems. Every outcome is reported through
ResolvedResults.state:

- LIVE         backend answered with rows
- NO_DATA      backend answered 200 with zero rows (normal, logged at INFO)
- UNAVAILABLE  no scenario selected, or the request failed after one retry
               (logged at WARN and recorded in the fetch error log)
- LOADING      snapshot published by submit() while the fetch is in flight
- LOCAL        caller-supplied plan data, no request made

Asynchronous fetches run on a small thread pool. Only the most recent
submission may publish its result; a response for a superseded query is
dropped, never merged.
"""

__all__ = [
    "FallbackProvider",
    "DataSourceResolver",
    "resolve_scenarios",
    "classify_error",
]

logger = logging.getLogger(__name__)

FallbackProvider = Callable[[CalculationBasis], ResultSet]


def classify_error(error: Exception) -> tuple[int, str]:
    """(status, error_type) for a fetch error record."""
    if isinstance(error, ApiError):
        return error.status, "SERVER_ERROR" if error.status >= 500 else "CLIENT_ERROR"
    return -1, "TRANSPORT_ERROR"


def _record_failure(error_log: ErrorLogBuffer | None, endpoint: str, error: ApiClientError) -> None:
    if error_log is None:
        return
    status, error_type = classify_error(error)
    error_log.append(FetchErrorRecord.create(endpoint, status, error_type, error.message))


class DataSourceResolver:
    """Resolve result queries against the backend with fallback.

    Args:
        client: API client used for the result endpoints
        fallback: Basis -> fallback ResultSet (defaults to the bundled dataset)
        retries: Automatic retries after a failed request before falling back
        error_log: Optional buffer receiving one record per final failure
        fallback_enabled: When False, failures resolve to an empty ResultSet
    """

    def __init__(
        self,
        client: ApiClient,
        fallback: FallbackProvider | None = None,
        retries: int = 1,
        error_log: ErrorLogBuffer | None = None,
        fallback_enabled: bool = True,
        max_workers: int = 2,
    ) -> None:
        self.client = client
        self._fallback = fallback or fallback_results
        self.retries = max(retries, 0)
        self.error_log = error_log
        self.fallback_enabled = fallback_enabled
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ep-resolve")
        self._lock = threading.Lock()
        self._seq = 0
        self._current: ResolvedResults | None = None
        self._future: Future[ResolvedResults] | None = None

    # ---- synchronous -----------------------------------------------------

    def fallback_for(self, query: ResultsQuery) -> ResultSet:
        """Fallback dataset for the query's basis, narrowed by its year/iteration filters."""
        if not self.fallback_enabled:
            return ResultSet()
        data = self._fallback(query.basis)
        if not query.year and query.iteration is None:
            return data
        rows = tuple(
            r for r in data.rows
            if (not query.year or str(r.year) == str(query.year).strip())
            and (query.iteration is None or r.build_cycle == query.iteration)
        )
        return ResultSet(metrics=data.metrics, rows=rows)

    def _fetch(self, query: ResultsQuery) -> ResultSet:
        if query.basis is CalculationBasis.NPV:
            dtos = results_api.get_npv_results(
                self.client, query.scenario_id, query.year, query.iteration
            )
            return transform_npv_results(dtos)
        dtos = results_api.get_study_results(
            self.client, query.scenario_id, query.year, query.iteration
        )
        return transform_study_results(dtos)

    def _fetch_with_retry(self, query: ResultsQuery) -> ResultSet:
        attempt = 0
        while True:
            try:
                return self._fetch(query)
            except ApiClientError as e:
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.info(f"retrying scenario={query.scenario_id} after error: {e}")

    def _snapshot(
        self,
        query: ResultsQuery,
        data: ResultSet,
        state: DataSourceState,
        error: Exception | None = None,
    ) -> ResolvedResults:
        return ResolvedResults(
            query=query,
            data=data,
            is_live=state is DataSourceState.LIVE,
            is_loading=state is DataSourceState.LOADING,
            error=error,
            state=state,
        )

    def resolve(self, query: ResultsQuery, local: ResultSet | None = None) -> ResolvedResults:
        """Fetch one query synchronously; network errors become fallback results."""
        if local is not None:
            return self._snapshot(query, local, DataSourceState.LOCAL)

        if query.scenario_id is None:
            logger.info("no scenario selected, showing fallback data")
            return self._snapshot(query, self.fallback_for(query), DataSourceState.UNAVAILABLE)

        endpoint = "npv" if query.basis is CalculationBasis.NPV else "study"
        endpoint = f"/results/{endpoint}/{query.scenario_id}"
        try:
            data = self._fetch_with_retry(query)
        except ApiClientError as e:
            logger.warning(f"results unavailable for scenario={query.scenario_id}: {e}")
            _record_failure(self.error_log, e.endpoint or endpoint, e)
            return self._snapshot(
                query, self.fallback_for(query), DataSourceState.UNAVAILABLE, e
            )

        if data.is_empty:
            logger.info(f"scenario={query.scenario_id} has no {query.basis.value} results, showing fallback data")
            return self._snapshot(query, self.fallback_for(query), DataSourceState.NO_DATA)
        return self._snapshot(query, data, DataSourceState.LIVE)

    # ---- asynchronous ----------------------------------------------------

    def submit(self, query: ResultsQuery, local: ResultSet | None = None) -> ResolvedResults:
        """Start a fetch in the background and return the LOADING snapshot.

        Supersedes any in-flight query; its response will be discarded.
        """
        loading = self._snapshot(query, self.fallback_for(query), DataSourceState.LOADING)
        with self._lock:
            self._seq += 1
            seq = self._seq
            self._current = loading
            self._future = self._executor.submit(self._run, seq, query, local)
        return loading

    def _run(self, seq: int, query: ResultsQuery, local: ResultSet | None) -> ResolvedResults:
        try:
            resolved = self.resolve(query, local)
        except Exception as e:
            # a submitted query always settles
            logger.exception(f"resolving scenario={query.scenario_id} failed: {e}")
            resolved = self._snapshot(query, self.fallback_for(query), DataSourceState.UNAVAILABLE, e)
        with self._lock:
            if seq != self._seq:
                latest = self._current.query.key if self._current is not None else None
                logger.debug(f"discarding stale response key={query.key} latest={latest}")
                return resolved
            self._current = resolved
        return resolved

    def current(self) -> ResolvedResults | None:
        with self._lock:
            return self._current

    def wait(self, timeout: float | None = None) -> ResolvedResults | None:
        """Block until the latest submission has settled and return it."""
        with self._lock:
            future = self._future
        if future is not None:
            future.result(timeout=timeout)
        return self.current()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> DataSourceResolver:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def resolve_scenarios(
    client: ApiClient,
    error_log: ErrorLogBuffer | None = None,
) -> ResolvedScenarios:
    """Scenario list from the backend, or the fallback list when empty/unreachable."""
    try:
        scenarios = scenarios_api.get_all(client)
    except ApiClientError as e:
        logger.warning(f"scenario list unavailable: {e}")
        _record_failure(error_log, e.endpoint or "/scenarios", e)
        return ResolvedScenarios(fallback_scenarios(), False, e, DataSourceState.UNAVAILABLE)
    if not scenarios:
        logger.info("backend has no scenarios, showing fallback list")
        return ResolvedScenarios(fallback_scenarios(), False, None, DataSourceState.NO_DATA)
    return ResolvedScenarios(scenarios, True, None, DataSourceState.LIVE)
