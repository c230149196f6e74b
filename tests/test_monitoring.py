"""
Tests for the transformation log, cancellation tokens and the query registry
"""

import logging

from clinic_availability.services.monitoring import (
    ActiveQueryRegistry,
    CancellationToken,
    TransformationLog,
)


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


class TestTransformationLog:
    """Test the bounded audit trail"""

    def test_record_and_read_back(self):
        log = TransformationLog()

        entry_id = log.record('SlotGenerator', 'generate', {'date': '2025-06-02'}, {'slots': 8}, ['half_open'])

        assert entry_id
        entry = log.entries()[0]
        assert entry.id == entry_id
        assert entry.component == 'SlotGenerator'
        assert entry.rules_applied == ['half_open']

    def test_bounded(self):
        log = TransformationLog(max_entries=3)
        for i in range(5):
            log.record('C', f'op-{i}', {}, {})

        assert len(log) == 3
        assert [e.operation for e in log.entries()] == ['op-2', 'op-3', 'op-4']

    def test_filter_by_component_and_limit(self):
        log = TransformationLog()
        log.record('A', 'one', {}, {})
        log.record('B', 'two', {}, {})
        log.record('A', 'three', {}, {})

        assert [e.operation for e in log.entries(component='A')] == ['one', 'three']
        assert [e.operation for e in log.entries(limit=1)] == ['three']

    def test_sensitive_fields_redacted(self):
        log = TransformationLog()
        log.record('Repo', 'query', {'api_key': 'abc', 'organization_id': 'org-1'}, {'token': 'xyz'})

        entry = log.entries()[0]
        assert entry.input_summary == {'api_key': '[REDACTED]', 'organization_id': 'org-1'}
        assert entry.output_summary == {'token': '[REDACTED]'}

    def test_disabled(self):
        log = TransformationLog(enabled=False)

        assert log.record('A', 'one', {}, {}) is None
        assert len(log) == 0

    def test_clear(self):
        log = TransformationLog()
        log.record('A', 'one', {}, {})
        log.clear()
        assert len(log) == 0


class TestCancellationToken:
    """Test cooperative cancellation flag"""

    def test_cancel(self):
        token = CancellationToken()
        assert not token.cancelled

        token.cancel()
        token.cancel()

        assert token.cancelled


class TestActiveQueryRegistry:
    """Test in-flight query tracking"""

    def test_register_and_unregister(self):
        registry = ActiveQueryRegistry()

        token = registry.register('sig-1', 'org-1')
        assert registry.active_count('sig-1') == 1
        assert registry.active_count() == 1

        registry.unregister('sig-1', token)
        assert registry.active_count() == 0
        assert registry.snapshot() == []

    def test_cancel_by_signature(self):
        registry = ActiveQueryRegistry()
        first = registry.register('sig-1', 'org-1')
        second = registry.register('sig-1', 'org-1')
        other = registry.register('sig-2', 'org-1')

        assert registry.cancel('sig-1') == 2
        assert first.cancelled and second.cancelled
        assert not other.cancelled
        assert registry.cancel('missing') == 0

    def test_cancel_organization(self):
        registry = ActiveQueryRegistry()
        mine = registry.register('sig-1', 'org-1')
        theirs = registry.register('sig-2', 'org-2')

        assert registry.cancel_organization('org-1') == 1
        assert mine.cancelled
        assert not theirs.cancelled

    def test_duplicate_polling_warns(self, caplog):
        registry = ActiveQueryRegistry(max_duplicates=2)

        with caplog.at_level(logging.WARNING):
            for _ in range(3):
                registry.register('sig-1', 'org-1')

        assert any('possible polling loop' in r.message for r in caplog.records)

    def test_snapshot_reports_age(self):
        clock = FakeClock()
        registry = ActiveQueryRegistry(clock=clock)
        registry.register('sig-1', 'org-1')
        clock.now = 102.5

        snapshot = registry.snapshot()

        assert snapshot == [{
            'signature': 'sig-1',
            'organization_id': 'org-1',
            'age_seconds': 2.5,
            'cancelled': False,
        }]

    def test_registries_are_independent(self):
        first = ActiveQueryRegistry()
        second = ActiveQueryRegistry()
        first.register('sig-1', 'org-1')

        assert second.active_count() == 0
