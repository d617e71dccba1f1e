import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

from api.config import ROOT_DIR, Settings, load_settings
from cli.__main__ import app
from cli.db import connect
from tests.fixtures import SampleDatabaseMixin


class LoadSettingsTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmpdir.cleanup)
        self.tmp = Path(self._tmpdir.name)

    def write(self, text):
        path = self.tmp / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_missing_file_gives_defaults(self):
        settings = load_settings(self.tmp / "nope.yaml")
        self.assertEqual(settings.max_depth, Settings().max_depth)
        self.assertEqual(settings.default_relation_types, ["kinship", "association"])

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_yaml_values_and_relative_db_path(self):
        settings = load_settings(self.write("db_path: data/other.sqlite\nmax_depth: 2\nmax_nodes: 50\n"))
        self.assertEqual(settings.db_path, ROOT_DIR / "data" / "other.sqlite")
        self.assertEqual(settings.max_depth, 2)
        self.assertEqual(settings.max_nodes, 50)

    def test_environment_overrides(self):
        path = self.write("log_level: WARNING\n")
        env = {"CBDB_DB_PATH": str(self.tmp / "env.sqlite"), "CBDB_LOG_LEVEL": "DEBUG"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings(path)
        self.assertEqual(settings.db_path, self.tmp / "env.sqlite")
        self.assertEqual(settings.log_level, "DEBUG")

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_unknown_key(self):
        with self.assertRaises(ValueError):
            load_settings(self.write("depth_limit: 3\n"))

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_bad_relation_type(self):
        with self.assertRaises(ValueError):
            load_settings(self.write("default_relation_types: [kinship, marriage]\n"))

    def test_config_path_from_environment(self):
        path = self.write("default_depth: 2\n")
        with mock.patch.dict(os.environ, {"CBDB_CONFIG": str(path)}, clear=True):
            self.assertEqual(load_settings().default_depth, 2)


class CliTest(SampleDatabaseMixin, unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_stats(self):
        result = self.runner.invoke(app, ["stats", "1762", "--db", str(self.db_path)])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.output)["kinship_count"], 5)

    def test_explore_report(self):
        result = self.runner.invoke(
            app, ["explore", "1762", "--type", "kinship", "--db", str(self.db_path), "-v"]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("王安石", result.output)
        self.assertIn("Persons: 5 (4 discovered)", result.output)
        self.assertIn("Most connected: 王安石 (5)", result.output)

    def test_explore_json(self):
        result = self.runner.invoke(
            app, ["explore", "600", "--type", "kinship", "--json", "--db", str(self.db_path)]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        body = json.loads(result.output)
        self.assertEqual(body["metrics"]["total_persons"], 3)

    def test_path(self):
        result = self.runner.invoke(
            app, ["path", "600", "700", "-d", "1", "--type", "kinship", "--db", str(self.db_path)]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("600 -> 650 -> 700", result.output)

    def test_path_not_found(self):
        result = self.runner.invoke(
            app, ["path", "400", "500", "--type", "kinship", "--db", str(self.db_path)]
        )
        self.assertEqual(result.exit_code, 1)
        self.assertIn("No path found", result.output)

    def test_recursive(self):
        result = self.runner.invoke(
            app, ["recursive", "1762", "--degrees", "2", "--json", "--db", str(self.db_path)]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(len(json.loads(result.output)["edges"]), 8)

    def test_init_db_and_load_table(self):
        with tempfile.TemporaryDirectory() as tmp:
            db_path = Path(tmp) / "new" / "cbdb.sqlite"
            result = self.runner.invoke(app, ["init-db", "--db", str(db_path)])
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertTrue(db_path.exists())

            csv_path = Path(tmp) / "kin.csv"
            csv_path.write_text(
                "c_personid,c_kin_id,c_kin_code\n1,2,75\n1,,0\n", encoding="utf-8"
            )
            result = self.runner.invoke(
                app, ["load-table", "KIN_DATA", "--file", str(csv_path), "--db", str(db_path)]
            )
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn("Loaded 2 rows", result.output)

            conn = connect(db_path)
            try:
                rows = conn.execute("SELECT c_kin_id FROM KIN_DATA ORDER BY c_kin_code DESC").fetchall()
            finally:
                conn.close()
            self.assertEqual(rows, [(2,), (None,)])

    def test_load_unknown_table(self):
        with tempfile.TemporaryDirectory() as tmp:
            csv_path = Path(tmp) / "x.csv"
            csv_path.write_text("a\n1\n", encoding="utf-8")
            result = self.runner.invoke(
                app, ["load-table", "NOPE", "--file", str(csv_path), "--db", str(self.db_path)]
            )
            self.assertNotEqual(result.exit_code, 0)
            self.assertIsInstance(result.exception, ValueError)


if __name__ == "__main__":
    unittest.main()
