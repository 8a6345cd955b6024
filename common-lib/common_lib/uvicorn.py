import logging


LOG = logging.getLogger(__name__)

ACCESS_LOGGER = "uvicorn.access"


class EndpointFilter(logging.Filter):
    """Drops uvicorn access log records of noisy endpoints, e.g. health checks polled by the load balancer."""

    def __init__(self, paths: set[str], status_code: int):
        super().__init__()
        self._paths = paths
        self._status_code = status_code

    @staticmethod
    def add_filter(*paths: str, status_code: int = 200) -> "EndpointFilter":
        endpoint_filter = EndpointFilter(set(paths), status_code)
        logging.getLogger(ACCESS_LOGGER).addFilter(endpoint_filter)
        return endpoint_filter

    @staticmethod
    def remove_filter(endpoint_filter: "EndpointFilter"):
        logging.getLogger(ACCESS_LOGGER).removeFilter(endpoint_filter)

    def filter(self, record: logging.LogRecord) -> bool:
        # record.args contains (IP, Method, Path, HTTP version, Status Code)
        if not record.args or len(record.args) < 3:
            LOG.debug("Log record does not have path argument. Skipping filtering.")
            return True

        if len(record.args) >= 5 and record.args[4] != self._status_code:
            # Failed health checks are worth seeing.
            return True

        path = str(record.args[2]).split("?", 1)[0]
        return path not in self._paths
