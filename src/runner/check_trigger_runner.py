#!/usr/bin/env python3
"""
Check Trigger Runner - triggers checks by tag and follows their results.

Unlike a runner that is handed its checks, this one only learns which checks
run (and under which run ids) from the trigger response. Results arrive on the
results bus keyed by run id, possibly before that response is processed, so:

1. the results subscription is acknowledged before the trigger request is sent
2. the run session (run id -> check mapping) is a future resolved once by the
   trigger step; message handlers suspend on it until it resolves
3. every check run gets one timer; the timer table is the only authority on
   whether a run already reached a terminal state
"""

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..core.config import Config, TriggerConfig
from ..results_bus import ResultKind, ResultSubscriber, build_subscription_pattern, parse_result_topic
from ..rest.api import ApiClient
from ..rest.assets import Assets
from ..rest.models import CheckRunEndResult, RunLocation, TriggerRequest
from ..rest.test_sessions import TestSessions
from .completion import CompletionCounter
from .events import EventChannel, EventListener, Events, RunnerEvent
from .models import RunEntry, RunPhase, RunSession

logger = logging.getLogger(__name__)

TIMEOUT_REASON = "Reached timeout"

SubscriberFactory = Callable[[], Awaitable[Any]]


class CheckTriggerRunner:
    """
    Triggers the checks matching target tags and reports their outcome.

    Usage:
        runner = CheckTriggerRunner(account_id, api_key, ["prod"], location, 240, False)
        runner.on(lambda event: print(event.kind))
        await runner.run()
    """

    def __init__(
        self,
        account_id: str,
        api_key: str,
        target_tags: List[str],
        location: RunLocation,
        timeout: float = Config.DEFAULT_CHECK_TIMEOUT,
        verbose: bool = False,
        should_record: bool = True,
        api_base_url: str = Config.API_BASE_URL,
        broker_url: str = Config.RESULTS_BROKER_URL,
        ack_timeout: float = Config.SUBSCRIBE_ACK_TIMEOUT,
        test_sessions: Optional[TestSessions] = None,
        assets: Optional[Assets] = None,
        subscriber_factory: Optional[SubscriberFactory] = None,
        events: Optional[EventChannel] = None,
    ):
        """
        Initialize the runner.

        Args:
            account_id: Account the checks belong to, scopes the results topic
            api_key: API key for the REST API
            target_tags: Tags selecting the checks to run
            location: Public or private run location
            timeout: Seconds to wait for each check run's result
            verbose: Fetch run assets for passing checks too
            should_record: Ask the backend to record the runs
            test_sessions: Trigger collaborator (built from the API settings if omitted)
            assets: Asset fetch collaborator (built from the API settings if omitted)
            subscriber_factory: Coroutine factory returning a connected subscriber
            events: Event channel to emit on
        """
        self.account_id = account_id
        self.api_key = api_key
        self.target_tags = list(target_tags)
        self.location = location
        self.timeout = timeout
        self.verbose = verbose
        self.should_record = should_record
        self.api_base_url = api_base_url
        self.broker_url = broker_url
        self.ack_timeout = ack_timeout
        self.test_sessions = test_sessions
        self.assets = assets
        self.events = events or EventChannel()
        self._subscriber_factory = subscriber_factory or self._connect_subscriber

        # run id -> entry, only holds runs that have not reached a terminal state
        self.timeouts: Dict[str, RunEntry] = {}
        self._session: Optional[asyncio.Future] = None
        self._completion: Optional[CompletionCounter] = None

    @classmethod
    def from_config(
        cls,
        config: TriggerConfig,
        target_tags: List[str],
        location: RunLocation,
        verbose: bool = False,
        should_record: bool = True,
        **kwargs: Any,
    ) -> "CheckTriggerRunner":
        """Build a runner from a TriggerConfig."""
        config.require_credentials()
        return cls(
            account_id=config.account_id,
            api_key=config.api_key,
            target_tags=target_tags,
            location=location,
            timeout=config.check_timeout_seconds,
            verbose=verbose,
            should_record=should_record,
            api_base_url=config.api_base_url,
            broker_url=config.results_broker_url,
            ack_timeout=config.subscribe_ack_timeout_seconds,
            **kwargs,
        )

    def on(self, listener: EventListener) -> None:
        """Register a listener called synchronously for every event."""
        self.events.add_listener(listener)

    async def _connect_subscriber(self) -> ResultSubscriber:
        return await ResultSubscriber.connect(self.broker_url, ack_timeout=self.ack_timeout)

    async def run(self) -> None:
        """
        Trigger the checks and wait until every check run finished.

        Emits RUN_FINISHED on completion, or a single ERROR if the trigger
        step fails. The broker connection is always closed on return.
        """
        session_id = str(uuid.uuid4())
        self.timeouts = {}
        self._session = asyncio.get_running_loop().create_future()
        self._completion = None

        subscriber = await self._subscriber_factory()

        injected = (self.test_sessions, self.assets)
        api = None
        try:
            if self.test_sessions is None or self.assets is None:
                api = ApiClient(self.api_base_url, self.account_id, self.api_key)
                self.test_sessions = self.test_sessions or TestSessions(api)
                self.assets = self.assets or Assets(api)

            # Listen before triggering, fast runs may publish before the trigger call returns
            pattern = build_subscription_pattern(self.account_id, session_id)
            await subscriber.subscribe(pattern, self._handle_message)

            try:
                await self._schedule_all_checks(session_id)
                await self._completion.wait()
                self._emit(RunnerEvent.run_finished())
            except Exception as e:
                logger.error(f"Run session {session_id} failed: {e}")
                if not self._session.done():
                    self._session.cancel()
                self._emit(RunnerEvent.failure(e))
        finally:
            self._disarm_all()
            try:
                await subscriber.end()
            except Exception as e:
                logger.warning(f"Failed to disconnect from results broker: {e}")
            if api is not None:
                await api.close()
                self.test_sessions, self.assets = injected

    async def _schedule_all_checks(self, session_id: str) -> RunSession:
        request = TriggerRequest(
            should_record=self.should_record,
            run_location=self.location,
            check_run_suite_id=session_id,
            target_tags=self.target_tags,
        )
        response = await self.test_sessions.trigger(request)

        session = RunSession(
            session_id=session_id,
            checks=list(response.checks),
            run_ids=response.run_id_to_check_id(),
        )
        self._completion = CompletionCounter(len(session.checks))

        loop = asyncio.get_running_loop()
        for check in session.checks:
            run_id = response.check_run_ids[check.id]
            entry = RunEntry(run_id=run_id, check=check)
            entry.timer = loop.call_later(self.timeout, self._on_timeout, run_id)
            self.timeouts[run_id] = entry

        logger.info(f"Session {session_id}: waiting for {len(session.checks)} check runs")
        self._emit(RunnerEvent.run_started(session.checks))
        self._session.set_result(session)
        return session

    async def _handle_message(self, topic: str, message: Any) -> None:
        parsed = parse_result_topic(topic)
        if parsed is None:
            return

        session: RunSession = await asyncio.shield(self._session)

        entry = self.timeouts.get(parsed.run_id)
        check = session.check_for_run(parsed.run_id)
        if entry is None or check is None:
            # Already finished (e.g. timed out) or not part of this session
            logger.debug(f"Dropping {parsed.kind} for inactive run {parsed.run_id}")
            return

        kind = parsed.result_kind
        if kind is ResultKind.RUN_START:
            if entry.phase is RunPhase.ARMED:
                entry.phase = RunPhase.IN_PROGRESS
                self._emit(RunnerEvent.check_in_progress(check))
        elif kind is ResultKind.RUN_END:
            self._disarm(parsed.run_id)
            result = await self._build_result(message)
            self._emit(RunnerEvent.check_successful(check, result))
            self._emit(RunnerEvent.check_finished(check))
        elif kind is ResultKind.ERROR:
            self._disarm(parsed.run_id)
            self._emit(RunnerEvent.check_failed(check, message))
            self._emit(RunnerEvent.check_finished(check))
        else:
            logger.debug(f"Ignoring unknown result kind {parsed.kind} for run {parsed.run_id}")

    async def _build_result(self, message: Any) -> Any:
        raw = message.get("result") if isinstance(message, dict) else None
        try:
            result = CheckRunEndResult.model_validate(raw or {})
        except ValidationError as e:
            logger.warning(f"Unexpected run-end result, passing it through: {e}")
            return raw

        if not (self.verbose or result.has_failures):
            return result

        region = result.assets.region
        log_path = result.assets.log_path
        data_path = result.assets.check_run_data_path
        if not region:
            if log_path or data_path:
                logger.debug("Run-end result has asset paths but no region, skipping asset fetch")
            return result

        if log_path:
            try:
                result.logs = await self.assets.get_logs(region, log_path)
            except Exception as e:
                logger.warning(f"Failed to fetch logs {log_path}: {e}")
        if data_path:
            try:
                result.check_run_data = await self.assets.get_check_run_data(region, data_path)
            except Exception as e:
                logger.warning(f"Failed to fetch check run data {data_path}: {e}")
        return result

    def _on_timeout(self, run_id: str) -> None:
        entry = self.timeouts.pop(run_id, None)
        if entry is None:
            return
        entry.timer = None
        entry.phase = RunPhase.FINISHED
        logger.warning(f"Check {entry.check.id} (run {run_id}) timed out after {self.timeout}s")
        self._emit(RunnerEvent.check_failed(entry.check, TIMEOUT_REASON))
        self._emit(RunnerEvent.check_finished(entry.check))

    def _disarm(self, run_id: str) -> Optional[RunEntry]:
        entry = self.timeouts.pop(run_id, None)
        if entry is None:
            return None
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        entry.phase = RunPhase.FINISHED
        return entry

    def _disarm_all(self) -> None:
        for run_id in list(self.timeouts):
            self._disarm(run_id)

    def _emit(self, event: RunnerEvent) -> None:
        self.events.emit(event)
        if event.kind is Events.CHECK_FINISHED and self._completion is not None:
            self._completion.mark_finished()
