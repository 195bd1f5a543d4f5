import unittest

from capture_history.history.bounded import THIN_MIN_ITEMS, BoundedHistory, thin_out


class ThinOutPolicyTests(unittest.TestCase):
    def test_small_histories_are_never_thinned(self) -> None:
        for num_items in range(THIN_MIN_ITEMS):
            for counter in range(8):
                self.assertIsNone(thin_out(num_items, counter))

    def test_index_follows_low_counter_bits(self) -> None:
        expected = [24, 16, 24, 8, 24, 16, 24, None]
        for counter in range(64):
            self.assertEqual(thin_out(32, counter), expected[counter % 8], msg=f"counter={counter}")

    def test_index_stays_within_bounds(self) -> None:
        for num_items in range(THIN_MIN_ITEMS, 80):
            for counter in range(32):
                index = thin_out(num_items, counter)
                if index is not None:
                    self.assertGreaterEqual(index, 0)
                    self.assertLess(index, num_items)


class BoundedHistoryTests(unittest.TestCase):
    def test_forty_appends_thin_to_thirty_two(self) -> None:
        history: BoundedHistory[int] = BoundedHistory(32)
        for item in range(40):
            history.append(item)
        expected = (
            list(range(0, 8))
            + list(range(9, 16))
            + [17]
            + list(range(19, 24))
            + [25, 27, 29]
            + list(range(32, 40))
        )
        self.assertEqual(len(history), 32)
        self.assertEqual(history.items(), expected)
        self.assertEqual(history.counter, 9)

    def test_repeated_appends_converge_to_capacity(self) -> None:
        history: BoundedHistory[int] = BoundedHistory(32)
        for item in range(500):
            history.append(item)
            self.assertLessEqual(len(history), 32)
            if item >= 31:
                self.assertEqual(len(history), 32)
        items = history.items()
        self.assertEqual(items, sorted(items))
        self.assertEqual(items[-1], 499)

    def test_counter_start_shifts_the_schedule(self) -> None:
        history: BoundedHistory[int] = BoundedHistory(32, counter_start=7)
        for item in range(33):
            history.append(item)
        # Round 7 removes nothing, round 8 removes index 24.
        self.assertEqual(history.items(), list(range(24)) + list(range(25, 33)))
        self.assertEqual(history.counter, 9)

    def test_unbounded_history_keeps_everything(self) -> None:
        history: BoundedHistory[int] = BoundedHistory(None)
        for item in range(200):
            history.append(item)
        self.assertEqual(len(history), 200)
        self.assertEqual(history.counter, 0)

    def test_capacity_below_policy_range_drops_oldest(self) -> None:
        history: BoundedHistory[int] = BoundedHistory(3)
        for item in range(5):
            history.append(item)
        self.assertEqual(history.items(), [2, 3, 4])

    def test_invalid_capacity(self) -> None:
        with self.assertRaises(ValueError):
            BoundedHistory(0)

    def test_element_at_is_bounds_checked(self) -> None:
        history: BoundedHistory[str] = BoundedHistory(4)
        history.append("a")
        history.append("b")
        self.assertEqual(history.element_at(1), "b")
        self.assertIsNone(history.element_at(2))
        self.assertIsNone(history.element_at(-1))
        self.assertEqual(history.count, 2)

    def test_modified_flag_tracks_mutations(self) -> None:
        history: BoundedHistory[str] = BoundedHistory(None)
        self.assertFalse(history.modified)
        history.append("a")
        self.assertTrue(history.modified)
        history.mark_persisted()
        self.assertFalse(history.modified)
        history.element_at(0)
        self.assertFalse(history.modified)
        history.clear()
        self.assertTrue(history.modified)
        self.assertEqual(len(history), 0)

    def test_remove_at_deletes_in_place(self) -> None:
        history: BoundedHistory[str] = BoundedHistory(None)
        for item in "abc":
            history.append(item)
        history.mark_persisted()
        self.assertEqual(history.remove_at(1), "b")
        self.assertEqual(list(history), ["a", "c"])
        self.assertTrue(history.modified)
        with self.assertRaises(IndexError):
            history.remove_at(5)

    def test_restore_replaces_items_without_marking_modified(self) -> None:
        history: BoundedHistory[str] = BoundedHistory(2)
        history.append("stale")
        history.restore(["a", "b", "c"])
        self.assertEqual(history.items(), ["b", "c"])
        self.assertFalse(history.modified)
        history.restore([])
        self.assertEqual(len(history), 0)
        self.assertFalse(history.modified)


if __name__ == "__main__":
    unittest.main()
