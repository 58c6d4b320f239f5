"""
Unit tests for the row lifecycle state machine.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parents[1] / "src"))

import unittest

from sheetsync.domain.state_machine import (
    InvalidTransitionError,
    RowProgress,
    RowState,
    RowTracker,
    can_transition,
)


class TestTransitions(unittest.TestCase):

    def test_happy_paths(self):
        self.assertTrue(can_transition(RowState.NEW, RowState.CLASSIFIED))
        self.assertTrue(can_transition(RowState.CLASSIFIED, RowState.CREATED))
        self.assertTrue(can_transition(RowState.CLASSIFIED, RowState.UPDATED))
        self.assertTrue(can_transition(RowState.CREATED, RowState.SYNCED))
        self.assertTrue(can_transition(RowState.UPDATED, RowState.SYNCED))

    def test_any_active_state_can_error(self):
        for state in (RowState.NEW, RowState.CLASSIFIED, RowState.CREATED, RowState.UPDATED):
            self.assertTrue(can_transition(state, RowState.ERRORED), state)

    def test_terminal_states(self):
        for state in RowState:
            self.assertFalse(can_transition(RowState.SYNCED, state))
            self.assertFalse(can_transition(RowState.ERRORED, state))
        self.assertTrue(RowState.SYNCED.is_terminal)
        self.assertTrue(RowState.ERRORED.is_terminal)
        self.assertFalse(RowState.CREATED.is_terminal)

    def test_no_skipping_classification(self):
        self.assertFalse(can_transition(RowState.NEW, RowState.CREATED))
        self.assertFalse(can_transition(RowState.NEW, RowState.SYNCED))


class TestRowProgress(unittest.TestCase):

    def test_history(self):
        progress = RowProgress(key=2)
        progress.advance(RowState.CLASSIFIED)
        progress.advance(RowState.UPDATED)
        progress.complete()
        self.assertEqual(
            progress.history,
            [RowState.NEW, RowState.CLASSIFIED, RowState.UPDATED, RowState.SYNCED],
        )

    def test_invalid_transition_raises(self):
        progress = RowProgress(key=3)
        with self.assertRaises(InvalidTransitionError):
            progress.complete()

    def test_fail_records_message(self):
        progress = RowProgress(key=4)
        progress.advance(RowState.CLASSIFIED)
        progress.fail("Invalid date")
        self.assertTrue(progress.is_errored)
        self.assertEqual(progress.error, "Invalid date")

    def test_fail_after_sync_is_ignored(self):
        progress = RowProgress(key=5)
        progress.advance(RowState.CLASSIFIED)
        progress.advance(RowState.CREATED)
        progress.complete()
        progress.fail("late failure")
        self.assertEqual(progress.state, RowState.SYNCED)
        self.assertIsNone(progress.error)


class TestRowTracker(unittest.TestCase):

    def test_errored_row_does_not_affect_siblings(self):
        tracker = RowTracker()
        for key in (2, 3, 4):
            tracker.start(key).advance(RowState.CLASSIFIED)
        tracker.get(3).fail("bad row")
        for key in (2, 4):
            tracker.get(key).advance(RowState.CREATED)
            tracker.get(key).complete()

        counts = tracker.counts()
        self.assertEqual(counts[RowState.SYNCED], 2)
        self.assertEqual(counts[RowState.ERRORED], 1)
        self.assertEqual([p.key for p in tracker.in_state(RowState.SYNCED)], [2, 4])
        self.assertEqual(len(tracker), 3)


if __name__ == "__main__":
    unittest.main()
