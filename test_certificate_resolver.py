"""
Certificate Resolution Engine Tests

Covers the fan-out / fan-in contract:
1. One lookup per distinct valid number, shared by every row carrying it
2. Failures are isolated per key and never abort sibling lookups
3. Invalid-format rows are skipped without reaching the lookup
4. Commit is refused until every distinct key has settled
5. Printable documents: one per issue, grade rows on the first only
"""

import asyncio
from typing import Dict, List

import pytest

from core.models.certificate import (
    BusinessInfo,
    CertificateData,
    GradeDetail,
    IssueItem,
    LookupStatus,
)
from core.models.traceability import DeliveryInfo, TraceabilityRecord
from certificate_resolver import (
    GRADE_PENDING_NOTICE,
    INVALID_FORMAT_REASON,
    NETWORK_ERROR_MESSAGE,
    ResolutionNotCompleteError,
    ResolutionRegistry,
    ResolutionRun,
    build_certificate_documents,
    format_korean_date,
)


def _records(*numbers: str) -> List[TraceabilityRecord]:
    return [TraceabilityRecord(trace_number=n) for n in numbers]


def _data(number: str, issues: int = 1, details: int = 1, diagnostic: str = None) -> CertificateData:
    return CertificateData(
        animal_no=number,
        total_count=issues,
        issues=[IssueItem(issue_no=f"{number}-{i}", issue_date="20251201") for i in range(issues)],
        grade_details=[GradeDetail(quality_grade="1++") for _ in range(details)],
        grade_detail_diagnostic=diagnostic,
    )


class FakeLookup:
    """Records calls; outcome per number from `failures` / optional delays."""

    def __init__(self, failures: Dict[str, Exception] = None, delays: Dict[str, float] = None):
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: List[str] = []

    async def fetch_certificate(self, trace_number: str) -> CertificateData:
        self.calls.append(trace_number)
        await asyncio.sleep(self.delays.get(trace_number, 0))
        if trace_number in self.failures:
            raise self.failures[trace_number]
        return _data(trace_number)


class GatedLookup:
    """Each lookup waits until its number's event is set."""

    def __init__(self, numbers):
        self.events = {n: asyncio.Event() for n in numbers}

    async def fetch_certificate(self, trace_number: str) -> CertificateData:
        await self.events[trace_number].wait()
        return _data(trace_number)


class TestFanIn:
    """One lookup per distinct key, shared results."""

    @pytest.mark.parametrize("delays", [
        {"002191046216": 0.02, "002191046217": 0.0},
        {"002191046216": 0.0, "002191046217": 0.02},
    ])
    def test_shared_key_rows_show_identical_result(self, delays):
        lookup = FakeLookup(
            failures={"002191046216": RuntimeError("upstream 503")},
            delays=delays,
        )
        run = ResolutionRun(_records("002191046216", "002191046217", "002-1910-4621-6"), lookup)

        rows = asyncio.run(run.run())

        assert sorted(lookup.calls) == ["002191046216", "002191046217"]
        assert run.total == 2
        assert rows[0].result.status == LookupStatus.ERROR
        assert rows[0].result.message == "upstream 503"
        assert rows[2].result is rows[0].result
        assert rows[1].result.status == LookupStatus.SUCCESS
        assert rows[1].result.data.animal_no == "002191046217"

    def test_hyphenated_duplicates_share_one_key(self):
        lookup = FakeLookup()
        run = ResolutionRun(_records("002-1922-0566-7", "0021 9220 5667", "002192205667"), lookup)

        asyncio.run(run.run())

        assert lookup.calls == ["002192205667"]
        assert run.distinct_keys == ["002192205667"]

    def test_empty_error_message_falls_back(self):
        lookup = FakeLookup(failures={"002192205667": ConnectionError()})
        run = ResolutionRun(_records("002192205667"), lookup)

        rows = asyncio.run(run.run())

        assert rows[0].result.status == LookupStatus.ERROR
        assert rows[0].result.message == NETWORK_ERROR_MESSAGE

    def test_second_run_call_does_not_refetch(self):
        lookup = FakeLookup()
        run = ResolutionRun(_records("002192205667", "002191046216"), lookup)

        async def main():
            await run.run()
            await run.run()

        asyncio.run(main())
        assert len(lookup.calls) == 2

    def test_concurrent_run_calls_join(self):
        lookup = FakeLookup(delays={"002192205667": 0.01})
        run = ResolutionRun(_records("002192205667"), lookup)

        async def main():
            await asyncio.gather(run.run(), run.run())

        asyncio.run(main())
        assert lookup.calls == ["002192205667"]

    def test_separate_runs_do_not_share_results(self):
        lookup = FakeLookup()
        first = ResolutionRun(_records("002192205667"), lookup)
        second = ResolutionRun(_records("002192205667"), lookup)

        asyncio.run(first.run())
        asyncio.run(second.run())

        assert len(lookup.calls) == 2
        assert first.results is not second.results


class TestInvalidFormat:

    def test_short_number_skipped_immediately(self):
        lookup = FakeLookup()
        run = ResolutionRun(_records("12345", "002192205667"), lookup)

        # Before running: skipped row already settled, valid one loading
        assert run.rows[0].result.status == LookupStatus.SKIPPED
        assert run.rows[0].result.message == INVALID_FORMAT_REASON
        assert run.rows[1].result.status == LookupStatus.LOADING
        assert run.total == 1
        assert run.rows_total == 2
        assert run.rows_settled == 1

        asyncio.run(run.run())

        assert lookup.calls == ["002192205667"]
        assert run.rows_settled == run.rows_total == 2
        assert run.rows[0].result.status == LookupStatus.SKIPPED

    def test_label_number_is_skipped_not_looked_up(self):
        lookup = FakeLookup()
        run = ResolutionRun(_records("L00123456789"), lookup)

        asyncio.run(run.run())

        assert lookup.calls == []
        assert run.rows[0].result.status == LookupStatus.SKIPPED

    def test_all_invalid_is_complete_without_lookups(self):
        run = ResolutionRun(_records("123", "abc"), FakeLookup())
        assert run.total == 0
        assert run.is_complete
        assert run.commit() == []


class TestProgressAndCommitGating:

    def test_commit_gated_until_last_key_settles(self):
        numbers = ["002192205667", "002191046216"]
        lookup = GatedLookup(numbers)
        progress = []
        run = ResolutionRun(
            _records(*numbers, "12345"),
            lookup,
            on_progress=lambda r: progress.append((r.loaded, r.total)),
        )

        async def main():
            task = asyncio.ensure_future(run.run())
            await asyncio.sleep(0)

            assert run.loaded == 0
            assert not run.can_commit
            with pytest.raises(ResolutionNotCompleteError):
                run.commit(BusinessInfo())

            lookup.events[numbers[1]].set()
            for _ in range(5):
                await asyncio.sleep(0)
            assert run.loaded == 1
            assert run.rows_settled == 2
            assert not run.can_commit

            lookup.events[numbers[0]].set()
            await task

        asyncio.run(main())

        assert progress == [(1, 2), (2, 2)]
        assert run.can_commit
        assert run.completed_at is not None
        documents = run.commit(BusinessInfo(name="홍길동"))
        assert [d.animal_no for d in documents] == numbers

    def test_rows_settled_whenever_run_reports_complete(self):
        """Completion is reported only after results reach the rows."""
        observed = []

        def snapshot(r):
            observed.append((r.is_complete, [row.result.status for row in r.rows]))

        lookup = FakeLookup(delays={"002192205667": 0.01})
        run = ResolutionRun(
            _records("002192205667", "002191046216", "002-1922-0566-7"),
            lookup,
            on_progress=snapshot,
        )

        asyncio.run(run.run())

        assert len(observed) == 2
        for is_complete, statuses in observed:
            if is_complete:
                assert LookupStatus.LOADING not in statuses
        # The last key has landed but rows are not projected yet
        assert observed[-1][0] is False
        assert run.is_complete
        assert all(row.result.status == LookupStatus.SUCCESS for row in run.rows)

    def test_error_outcome_still_enables_commit(self):
        lookup = FakeLookup(failures={"002192205667": RuntimeError("No grading record")})
        run = ResolutionRun(_records("002192205667"), lookup)

        asyncio.run(run.run())

        assert run.can_commit
        assert run.commit() == []

    def test_missing_result_fails_closed(self):
        run = ResolutionRun(_records("002192205667"), FakeLookup())
        run._project()
        assert run.rows[0].result.status == LookupStatus.LOADING


class TestDocuments:

    def _success_run(self, data: CertificateData, record: TraceabilityRecord) -> ResolutionRun:
        class OneLookup:
            async def fetch_certificate(self, trace_number):
                return data

        run = ResolutionRun([record], OneLookup())
        asyncio.run(run.run())
        return run

    def test_one_document_per_issue_grade_rows_on_first(self):
        record = TraceabilityRecord(
            trace_number="002192205667",
            breed_label="한우 / 설도 (14.1kg)",
            delivery=DeliveryInfo(destination="서울길원초등학교", cut_name="설도"),
        )
        run = self._success_run(_data("002192205667", issues=2, details=3), record)
        info = BusinessInfo(name="홍길동", biz_name="길원축산")

        documents = run.commit(info)

        assert len(documents) == 2
        assert len(documents[0].grade_rows) == 3
        assert documents[1].grade_rows == []
        assert not documents[0].grade_pending
        assert not documents[1].grade_pending
        assert documents[0].delivery.destination == "서울길원초등학교"
        assert documents[0].breed_label == "한우 / 설도 (14.1kg)"
        assert documents[1].applicant.biz_name == "길원축산"

    def test_partial_data_marks_pending(self):
        data = _data("002192205667", issues=1, details=0, diagnostic="[x] HTTP 403: forbidden")
        run = self._success_run(data, TraceabilityRecord(trace_number="002192205667"))

        assert run.rows[0].result.status == LookupStatus.SUCCESS
        assert run.rows[0].result.partial

        documents = run.commit()
        assert documents[0].grade_pending
        assert documents[0].grade_pending_notice == GRADE_PENDING_NOTICE

    def test_skipped_and_error_rows_not_printed(self):
        lookup = FakeLookup(failures={"002191046217": RuntimeError("boom")})
        run = ResolutionRun(_records("12345", "002191046217", "002191046216"), lookup)
        asyncio.run(run.run())

        documents = build_certificate_documents(run.rows, BusinessInfo())

        assert [d.row_index for d in documents] == [2]

    @pytest.mark.parametrize("value,expected", [
        ("20251201", "2025년 12월 01일"),
        ("2025-12-01", "2025년 12월 01일"),
        ("", ""),
        (None, ""),
        ("2025", "2025"),
    ])
    def test_format_korean_date(self, value, expected):
        assert format_korean_date(value) == expected


class TestRegistry:

    def test_start_get_wait_discard(self):
        registry = ResolutionRegistry(FakeLookup())

        async def main():
            run = registry.start(_records("002192205667"))
            assert registry.get(run.run_id) is run
            finished = await registry.wait(run.run_id)
            return finished

        run = asyncio.run(main())

        assert run.is_complete
        assert len(registry) == 1
        assert registry.discard(run.run_id)
        assert registry.get(run.run_id) is None
        assert not registry.discard(run.run_id)

    def test_finished_task_is_released(self):
        registry = ResolutionRegistry(FakeLookup())

        async def main():
            run = registry.start(_records("002192205667"))
            assert registry.in_flight == 1
            await registry.wait(run.run_id)
            await asyncio.sleep(0)
            return run

        run = asyncio.run(main())

        assert registry.in_flight == 0
        assert registry.get(run.run_id) is run

    def test_oldest_finished_runs_evicted(self):
        registry = ResolutionRegistry(FakeLookup(), max_finished_runs=2)

        async def main():
            finished = []
            for _ in range(3):
                run = registry.start(_records("002192205667"))
                await registry.wait(run.run_id)
                finished.append(run)
            pending = registry.create(_records("002191046216"))
            return finished, pending

        finished, pending = asyncio.run(main())

        assert registry.get(finished[0].run_id) is None
        assert registry.get(finished[1].run_id) is finished[1]
        assert registry.get(finished[2].run_id) is finished[2]
        assert registry.get(pending.run_id) is pending
        assert len(registry) == 3

    def test_unfinished_runs_never_evicted(self):
        registry = ResolutionRegistry(FakeLookup(), max_finished_runs=0)

        first = registry.create(_records("002192205667"))
        second = registry.create(_records("002191046216"))

        assert registry.get(first.run_id) is first
        assert registry.get(second.run_id) is second


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
