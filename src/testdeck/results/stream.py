"""Turn socket result messages into per-test outcomes."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from testdeck.common.errors import IncompleteRunError
from testdeck.models.results import TestOutcome, unique_ids
from testdeck.models.tree import TestStatus
from testdeck.results.protocol import ResultEvent, ResultMessage
from testdeck.tree.ids import is_descendant
from testdeck_logging import get_logger

logger = get_logger(__name__)

INCOMPLETE_MESSAGE = "did not complete"

EVENT_STATUS: dict[ResultEvent, TestStatus] = {
    ResultEvent.STARTED: TestStatus.RUNNING,
    ResultEvent.PASSED: TestStatus.PASS,
    ResultEvent.FAILED: TestStatus.FAIL,
    ResultEvent.SKIPPED: TestStatus.SKIP,
    ResultEvent.ERROR: TestStatus.ERROR,
}


@dataclass
class StreamCompletion:
    """What remains to be applied once the stream has ended."""

    incomplete: IncompleteRunError | None = None
    outcomes: list[TestOutcome] = field(default_factory=list)
    reset_ids: list[str] = field(default_factory=list)


class SocketResultParser:
    """Convert streamed messages into outcomes as they arrive.

    Parameters
    ----------
    expected_ids : Iterable[str]
        Stable ids of the leaves the run is expected to report
    resolve : Callable[[str], str | None], optional
        Maps a framework identifier to a stable id; identity when omitted
    """

    def __init__(
        self,
        expected_ids: Iterable[str],
        resolve: Callable[[str], str | None] | None = None,
    ):
        self.expected_ids = unique_ids(expected_ids)
        self._expected = set(self.expected_ids)
        self._resolve = resolve or (lambda key: key)
        self._terminal: dict[str, TestStatus] = {}
        self.unresolved: list[str] = []
        self.end_received = False

    def handle(self, message: ResultMessage) -> list[TestOutcome]:
        """Return the outcomes carried by ``message``.

        A message naming a class or module that contains expected tests, such
        as a ``setUpClass`` error, settles every one of those tests that has
        not finished yet with the message's status and text.
        """
        if message.event is ResultEvent.END:
            self.end_received = True
            return []
        if message.test_id is None:
            return []

        test_id = self._resolve(message.test_id)
        if test_id is None:
            self.unresolved.append(message.test_id)
            logger.warning("Result for unknown test %r ignored", message.test_id)
            return []

        status = EVENT_STATUS[message.event]
        if test_id not in self._expected:
            members = [i for i in self.expected_ids if is_descendant(i, test_id)]
            if members:
                return self._settle_container(test_id, members, status, message)

        if status is TestStatus.RUNNING and test_id in self._terminal:
            return []
        if status.is_terminal:
            self._terminal[test_id] = status
        return [
            TestOutcome(
                test_id=test_id,
                status=status,
                duration=message.duration,
                message=message.message,
                traceback=message.traceback,
            ),
        ]

    def _settle_container(
        self,
        container_id: str,
        members: list[str],
        status: TestStatus,
        message: ResultMessage,
    ) -> list[TestOutcome]:
        if not status.is_terminal:
            return []
        pending = [i for i in members if i not in self._terminal]
        if not pending:
            logger.warning(
                "%s reported for %s after its tests finished: %s",
                status.value,
                container_id,
                message.message,
            )
            return []
        outcomes = []
        for test_id in pending:
            self._terminal[test_id] = status
            outcomes.append(
                TestOutcome(
                    test_id=test_id,
                    status=status,
                    message=message.message,
                    traceback=message.traceback,
                ),
            )
        return outcomes

    @property
    def pending_ids(self) -> list[str]:
        return [i for i in self.expected_ids if i not in self._terminal]

    @property
    def completed_ids(self) -> list[str]:
        return list(self._terminal)

    def finalize(self, cancelled: bool = False) -> StreamCompletion:
        """Account for every expected test that never reached a terminal status.

        When the user cancelled the run those tests are returned for reset to
        ``NOT_RUN``. Otherwise each becomes an ``ERROR`` outcome and an
        :class:`IncompleteRunError` describes them.
        """
        pending = self.pending_ids
        if not pending:
            return StreamCompletion()
        if cancelled:
            return StreamCompletion(reset_ids=pending)

        logger.warning("%d test(s) did not complete", len(pending))
        outcomes = [
            TestOutcome(test_id=i, status=TestStatus.ERROR, message=INCOMPLETE_MESSAGE)
            for i in pending
        ]
        for test_id in pending:
            self._terminal[test_id] = TestStatus.ERROR
        return StreamCompletion(
            incomplete=IncompleteRunError(pending),
            outcomes=outcomes,
        )
