import csv
import io
import unittest

from codetrack.models import PlatformAggregate
from codetrack.problem_manager import CSV_HEADER, ProblemManager
from codetrack.storage import MemoryStorage


class TestProblemManager(unittest.TestCase):

    def setUp(self):
        self.storage = MemoryStorage()
        self.manager = ProblemManager(self.storage)

    def test_add_problem_normalizes_fields(self):
        record = self.manager.add_problem(
            "u1", "  Two Sum ", "LeetCode", difficulty="Easy", category=" Hash Map ", tags=["hash", " "]
        )
        self.assertEqual(record.name, "Two Sum")
        self.assertEqual(record.platform, "leetcode")
        self.assertEqual(record.difficulty, "easy")
        self.assertEqual(record.category, "hash-tables")
        self.assertEqual(record.tags, ["hash"])
        self.assertEqual(record.url, "https://leetcode.com/problems/two-sum/")

    def test_add_problem_keeps_explicit_url(self):
        record = self.manager.add_problem("u1", "Custom", "other", url="https://example.com/p/1")
        self.assertEqual(record.url, "https://example.com/p/1")
        self.assertIsNone(record.difficulty)
        self.assertIsNone(record.category)

    def test_other_platform_has_no_generated_url(self):
        record = self.manager.add_problem("u1", "Custom", "other")
        self.assertIsNone(record.url)

    def test_add_problem_validation(self):
        with self.assertRaises(ValueError):
            self.manager.add_problem("u1", "   ", "leetcode")
        with self.assertRaises(ValueError):
            self.manager.add_problem("u1", "Two Sum", "codeforces")
        with self.assertRaises(ValueError):
            self.manager.add_problem("u1", "Two Sum", "leetcode", difficulty="insane")
        with self.assertRaises(ValueError):
            self.manager.add_problem("u1", "Two Sum", "leetcode", tags=[1])
        self.assertEqual(self.manager.list_problems("u1"), [])

    def test_set_difficulty_and_category(self):
        record = self.manager.add_problem("u1", "Two Sum", "leetcode")
        self.assertEqual(self.manager.set_difficulty("u1", record.id, "HARD").difficulty, "hard")
        self.assertEqual(self.manager.set_category("u1", record.id, "DP").category, "dynamic-programming")

    def test_set_difficulty_rejects_blank(self):
        record = self.manager.add_problem("u1", "Two Sum", "leetcode")
        with self.assertRaises(ValueError):
            self.manager.set_difficulty("u1", record.id, "")
        with self.assertRaises(ValueError):
            self.manager.set_category("u1", record.id, "  ")

    def test_missing_record_raises_lookup_error(self):
        with self.assertRaises(LookupError):
            self.manager.set_difficulty("u1", 404, "easy")
        with self.assertRaises(LookupError):
            self.manager.set_category("u1", 404, "arrays")
        with self.assertRaises(LookupError):
            self.manager.delete_problem("u1", 404)
        with self.assertRaises(LookupError):
            self.manager.delete_credential("u1", 404)

    def test_delete_problem_decrements_aggregate(self):
        self.storage.upsert_aggregate("u1", PlatformAggregate("leetcode", 74, 30, 34, 10))
        record = self.manager.add_problem("u1", "Two Sum", "leetcode", difficulty="easy")

        self.manager.delete_problem("u1", record.id)

        aggregate = self.storage.get_aggregates("u1")[0]
        self.assertEqual((aggregate.total_solved, aggregate.easy_solved), (73, 29))

    def test_delete_platform(self):
        self.manager.add_problem("u1", "Two Sum", "leetcode")
        self.manager.add_problem("u1", "Kadane", "gfg")
        self.assertEqual(self.manager.delete_platform("u1", "GFG"), 1)
        self.assertEqual([r.platform for r in self.manager.list_problems("u1")], ["leetcode"])
        with self.assertRaises(ValueError):
            self.manager.delete_platform("u1", "hackerrank")

    def test_recent_activity(self):
        for name in ("A", "B", "C"):
            self.manager.add_problem("u1", name, "other")
        self.assertEqual([r.name for r in self.manager.recent_activity("u1", 2)], ["C", "B"])

    def test_credentials(self):
        saved = self.manager.save_credential("u1", " LeetCode ", " validuser ")
        self.assertEqual((saved.platform, saved.handle), ("leetcode", "validuser"))
        with self.assertRaises(ValueError):
            self.manager.save_credential("u1", "other", "x")
        with self.assertRaises(ValueError):
            self.manager.save_credential("u1", "gfg", "   ")

        self.assertEqual(len(self.manager.list_credentials("u1")), 1)
        self.manager.delete_credential("u1", saved.id)
        self.assertEqual(self.manager.list_credentials("u1"), [])

    def test_export_csv(self):
        self.manager.add_problem("u1", "Two Sum", "leetcode", difficulty="easy", category="array")
        self.manager.add_problem("u1", "Custom, with comma", "other")

        rows = list(csv.reader(io.StringIO(self.manager.export_csv("u1"))))

        self.assertEqual(rows[0], CSV_HEADER)
        self.assertEqual(rows[0], ["id", "name", "platform", "difficulty", "category", "url", "solved"])
        self.assertEqual(rows[1][1:6], ["Two Sum", "leetcode", "easy", "arrays", "https://leetcode.com/problems/two-sum/"])
        self.assertEqual(rows[2][1], "Custom, with comma")
        self.assertEqual(rows[2][3:6], ["", "", ""])
        self.assertEqual(len(rows), 3)

    def test_export_csv_empty(self):
        self.assertEqual(self.manager.export_csv("nobody"), "id,name,platform,difficulty,category,url,solved\n")


if __name__ == '__main__':
    unittest.main()
