"""
Gradio Space adapter.

Implements RemoteConnector / RemoteClient on top of gradio_client.

Key differences from the Gradio JavaScript client:
- gradio_client is thread-based: Client() and view_api() block, and
  submit() returns a Job (a concurrent.futures.Future). Blocking calls
  run in a worker thread; the Job is bridged to an async event stream.
- Outputs are not downloaded: download_files=False keeps the remote
  FileData (with its url) so the content layer can fetch it.
- Arguments are passed positionally, so unnamed endpoints and labels
  without a parameter_name still line up.
"""

import asyncio
import inspect
import logging
from typing import Any, AsyncGenerator, Optional, Union

import httpx
from gradio_client import Client, handle_file
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

from hfspace_mcp.adapters.schema import (
    ApiStructure,
    DataEvent,
    EndpointSpec,
    ProgressUnit,
    RemoteEvent,
    StatusEvent,
)
from hfspace_mcp.config import get_retry_attempts, get_retry_min_wait, get_retry_max_wait
from hfspace_mcp.endpoints.schema_convert import schema_property_names

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL: float = 0.1

# gradio_client.utils.Status names -> stream stage
_PENDING_CODES = {"STARTING", "JOINING_QUEUE", "IN_QUEUE", "SENDING_DATA"}
_GENERATING_CODES = {"PROCESSING", "ITERATING", "PROGRESS"}


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if a connection failure is worth retrying.

    Retryable errors include:
    - Transport errors (DNS, refused connections, resets)
    - Timeouts
    - Spaces that are waking up (502/503)
    """
    if isinstance(exception, httpx.TransportError):
        return True
    error_msg = str(exception).lower()
    retryable_patterns = [
        "connection",
        "timeout",
        "timed out",
        "503",
        "502",
    ]
    return any(pattern in error_msg for pattern in retryable_patterns)


def _field(source: Any, name: str, default: Any = None) -> Any:
    """Read a field from a dict or an attribute from an object."""
    if isinstance(source, dict):
        return source.get(name, default)
    return getattr(source, name, default)


def order_arguments(spec: EndpointSpec, arguments: dict[str, Any]) -> list[Any]:
    """
    Arrange an argument map positionally against the endpoint's parameters.

    Lookup order per slot: schema property name, parameter_name, label.
    Unsupplied slots take their declared default, or None.
    """
    ordered = []
    for name, param in zip(schema_property_names(spec.parameters), spec.parameters):
        for key in (name, param.parameter_name, param.label):
            if key and key in arguments:
                ordered.append(arguments[key])
                break
        else:
            ordered.append(param.parameter_default if param.parameter_has_default else None)
    return ordered


def status_event(update: Any) -> Optional[StatusEvent]:
    """
    Translate a gradio_client StatusUpdate into a StatusEvent.

    Returns None for updates with no stream meaning (log lines, and
    failed finishes, whose message only arrives with the job result).
    """
    code = _field(update, "code")
    name = getattr(code, "name", str(code)).upper()

    progress_data = None
    raw_units = _field(update, "progress_data")
    if raw_units:
        progress_data = [
            ProgressUnit(
                index=_field(unit, "index"),
                length=_field(unit, "length"),
                unit=_field(unit, "unit"),
                progress=_field(unit, "progress"),
                desc=_field(unit, "desc"),
            )
            for unit in raw_units
        ]

    if name in _PENDING_CODES:
        return StatusEvent(
            stage="pending",
            queue=name == "IN_QUEUE",
            position=_field(update, "rank"),
            eta=_field(update, "eta"),
        )
    if name in _GENERATING_CODES:
        return StatusEvent(
            stage="generating",
            eta=_field(update, "eta"),
            progress_data=progress_data,
        )
    if name == "FINISHED":
        if _field(update, "success") is False:
            return None
        return StatusEvent(stage="complete")
    if name == "QUEUE_FULL":
        return StatusEvent(stage="error", message="Queue is full")
    if name == "CANCELLED":
        return StatusEvent(stage="error", message="Job was cancelled")
    return None


def as_output_list(output: Any) -> list[Any]:
    """gradio_client returns tuples for multi-output endpoints."""
    if isinstance(output, tuple):
        return list(output)
    return [output]


class GradioSpaceClient:
    """
    gradio_client implementation of RemoteClient.

    Usage:
        client = await GradioConnector().connect("evalstate/FLUX.1-schnell")
        api = await client.view_api()
        async for event in client.submit("/infer", {"prompt": "a cat"}):
            ...
    """

    def __init__(self, client: Client, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self._client = client
        self._poll_interval = poll_interval
        self._api: Optional[ApiStructure] = None
        self.raw_api: Optional[dict] = None

    async def view_api(self) -> ApiStructure:
        raw = await asyncio.to_thread(
            self._client.view_api, print_info=False, return_format="dict"
        )
        self.raw_api = raw
        self._api = ApiStructure.model_validate(raw)
        return self._api

    def upload_handle(self, path_or_url: str) -> Any:
        return handle_file(path_or_url)

    def _endpoint_spec(self, endpoint: Union[str, int]) -> Optional[EndpointSpec]:
        if self._api is None:
            return None
        if isinstance(endpoint, int):
            return self._api.unnamed_endpoints.get(str(endpoint))
        return self._api.named_endpoints.get(endpoint)

    async def submit(
        self,
        endpoint: Union[str, int],
        arguments: dict[str, Any],
    ) -> AsyncGenerator[RemoteEvent, None]:
        """
        Submit a call and stream its events.

        The Job is watched until done: each status change becomes a
        StatusEvent, each new output a DataEvent. A job that raises
        ends the stream with an error-stage StatusEvent.
        """
        spec = self._endpoint_spec(endpoint)
        args = order_arguments(spec, arguments) if spec else list(arguments.values())

        if isinstance(endpoint, int):
            job = self._client.submit(*args, fn_index=endpoint)
        else:
            job = self._client.submit(*args, api_name=endpoint)

        last_status: Optional[StatusEvent] = None
        seen_outputs = 0
        done = False
        try:
            while True:
                done = job.done()

                event = status_event(job.status())
                if event is not None and event != last_status:
                    last_status = event
                    yield event

                outputs = job.outputs()
                for output in outputs[seen_outputs:]:
                    yield DataEvent(data=as_output_list(output))
                seen_outputs = len(outputs)

                if done:
                    break
                await asyncio.sleep(self._poll_interval)
        finally:
            # consumer stopped early (error status, abandoned call)
            if not done:
                logger.debug(f"Cancelling unfinished job for {endpoint}")
                job.cancel()

        try:
            result = await asyncio.to_thread(job.result)
        except Exception as e:
            logger.debug(f"Job for {endpoint} raised: {e}")
            yield StatusEvent(stage="error", message=str(e) or type(e).__name__)
            return

        if seen_outputs == 0:
            yield DataEvent(data=as_output_list(result))


class GradioConnector:
    """
    Opens gradio_client connections.

    Client() blocks on HTTP while it loads the Space config, so it runs
    in a worker thread and is retried on transient failures (sleeping
    Spaces often answer 502/503 while they wake).
    """

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self._poll_interval = poll_interval

    @staticmethod
    def _client_kwargs(token: Optional[str]) -> dict[str, Any]:
        # gradio_client renamed hf_token -> token; detect and adapt
        params = inspect.signature(Client.__init__).parameters
        kwargs: dict[str, Any] = {}
        if token:
            kwargs["token" if "token" in params else "hf_token"] = token
        if "download_files" in params:
            kwargs["download_files"] = False
        if "verbose" in params:
            # stdout carries the MCP transport
            kwargs["verbose"] = False
        return kwargs

    async def connect(self, space_id: str, token: Optional[str] = None) -> GradioSpaceClient:
        kwargs = self._client_kwargs(token)

        @retry(
            stop=stop_after_attempt(get_retry_attempts()),
            wait=wait_exponential(multiplier=1, min=get_retry_min_wait(), max=get_retry_max_wait()),
            retry=retry_if_exception(is_retryable_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def connect_with_retry() -> Client:
            return await asyncio.to_thread(Client, space_id, **kwargs)

        logger.info(f"Connecting to Space {space_id}")
        client = await connect_with_retry()
        return GradioSpaceClient(client, poll_interval=self._poll_interval)
