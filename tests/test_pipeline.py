import logging
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from spotsave import pipeline
from spotsave.errors import PreconditionError, TraversalError
from spotsave.models import COPIED, DRY_RUN, ERROR, EXISTS, FAILED, TOO_SMALL, Threshold
from spotsave.policy import assess
from spotsave.reporter import RunReporter, build_summary
from tests.imaging import write_garbage, write_jpeg

DEFAULT = Threshold(minimum_width=1080, minimum_height=1080)


class PipelineTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.source = root / "Assets"
        self.output = root / "Pictures"
        self.source.mkdir()
        self.output.mkdir()

    def tearDown(self):
        self._tmp.cleanup()

    def run_pipeline(self, **kwargs):
        reporter = RunReporter()
        with self.assertLogs("spotsave", level="INFO") as logs:
            report = pipeline.run(self.source, self.output, DEFAULT, reporter, **kwargs)
        return report, logs.records

    def output_names(self):
        return sorted(p.name for p in self.output.iterdir())


class TestExampleScenario(PipelineTestCase):
    def test_mixed_cache(self):
        img1 = write_jpeg(self.source / "img1", 2000, 1500)
        write_jpeg(self.source / "img2", 800, 600)
        write_garbage(self.source / "img3")

        report, records = self.run_pipeline()

        self.assertEqual(self.output_names(), ["img1.jpg"])
        self.assertEqual((self.output / "img1.jpg").read_bytes(), img1.read_bytes())
        self.assertEqual(report.counts[COPIED], 1)
        self.assertEqual(report.counts[TOO_SMALL], 1)
        self.assertEqual(report.counts[ERROR], 1)

        too_small = [r for r in records if "too small" in r.getMessage()]
        errors = [r for r in records if r.levelno == logging.ERROR]
        self.assertEqual(len(too_small), 1)
        self.assertIn("img2", too_small[0].getMessage())
        self.assertEqual(len(errors), 1)
        self.assertIn("img3", errors[0].getMessage())


class TestIdempotence(PipelineTestCase):
    def test_second_run_copies_nothing(self):
        write_jpeg(self.source / "aaa", 1920, 1080)
        write_jpeg(self.source / "bbb", 1080, 1920)

        first, _ = self.run_pipeline()
        before = {p.name: p.read_bytes() for p in self.output.iterdir()}
        second, records = self.run_pipeline()
        after = {p.name: p.read_bytes() for p in self.output.iterdir()}

        self.assertEqual(first.copied, 2)
        self.assertEqual(second.copied, 0)
        self.assertEqual(second.counts[EXISTS], 2)
        self.assertEqual(before, after)
        self.assertFalse(any(r.getMessage().startswith("copying file") for r in records))


class TestNamingAndNoClobber(PipelineTestCase):
    def test_extensionless_name_gets_jpg_suffix(self):
        write_jpeg(self.source / "abc123", 1080, 1080)
        self.run_pipeline()
        self.assertEqual(self.output_names(), ["abc123.jpg"])

    def test_existing_target_is_never_overwritten(self):
        write_jpeg(self.source / "abc123", 3840, 2160)
        existing = self.output / "abc123.jpg"
        existing.write_bytes(b"user edited")

        report, records = self.run_pipeline()

        self.assertEqual(existing.read_bytes(), b"user edited")
        self.assertEqual(report.counts[EXISTS], 1)
        self.assertTrue(any("already exists" in r.getMessage() for r in records))

    def test_exclusive_create_reports_existing(self):
        source = write_jpeg(self.source / "raced", 2000, 2000)
        target = self.output / "raced.jpg"
        target.write_bytes(b"first")
        outcome = pipeline.copy_file(source, target)
        self.assertEqual(outcome.status, EXISTS)
        self.assertEqual(target.read_bytes(), b"first")

    def test_source_is_left_untouched(self):
        source = write_jpeg(self.source / "keep", 2000, 2000)
        data = source.read_bytes()
        self.run_pipeline()
        self.assertEqual(source.read_bytes(), data)


class TestIsolation(PipelineTestCase):
    def test_one_corrupt_file_does_not_block_the_batch(self):
        for i in range(3):
            write_jpeg(self.source / f"wall{i}", 1920, 1200)
        write_garbage(self.source / "corrupt")

        report, records = self.run_pipeline()

        self.assertEqual(report.copied, 3)
        self.assertEqual(report.counts[ERROR], 1)
        self.assertEqual(len([r for r in records if r.levelno == logging.ERROR]), 1)

    def test_copy_failure_is_reported_and_run_continues(self):
        write_jpeg(self.source / "one", 1920, 1200)
        write_jpeg(self.source / "two", 1920, 1200)

        calls = []

        def flaky_copy(src, dst):
            calls.append(src)
            if len(calls) == 1:
                raise OSError(28, "No space left on device")
            dst.write(src.read())

        with mock.patch("spotsave.pipeline.shutil.copyfileobj", side_effect=flaky_copy):
            report, records = self.run_pipeline()

        self.assertEqual(report.counts[FAILED], 1)
        self.assertEqual(report.copied, 1)
        failures = [r for r in records if r.levelno == logging.ERROR]
        self.assertEqual(len(failures), 1)
        self.assertIn("couldn't copy file", failures[0].getMessage())

    def test_unsearchable_output_is_a_per_file_failure(self):
        write_jpeg(self.source / "one", 1920, 1200)
        write_jpeg(self.source / "two", 1920, 1200)
        real_exists = Path.exists

        def denied_exists(path, *args, **kwargs):
            if path.suffix == ".jpg":
                raise PermissionError(13, "Permission denied", str(path))
            return real_exists(path, *args, **kwargs)

        with mock.patch.object(Path, "exists", autospec=True, side_effect=denied_exists):
            report, records = self.run_pipeline()

        self.assertEqual(report.counts[FAILED], 2)
        self.assertEqual(self.output_names(), [])
        failures = [r for r in records if r.levelno == logging.ERROR]
        self.assertEqual(len(failures), 2)
        self.assertTrue(all("couldn't check" in r.getMessage() for r in failures))


class TestTraversal(PipelineTestCase):
    def test_directories_are_descended_but_never_inspected(self):
        nested = self.source / "sub" / "deeper"
        nested.mkdir(parents=True)
        write_jpeg(nested / "inner", 2560, 1440)

        with mock.patch("spotsave.pipeline.assess", wraps=assess) as spy:
            report, records = self.run_pipeline()

        inspected = [call.args[0] for call in spy.call_args_list]
        self.assertEqual(inspected, [nested / "inner"])
        self.assertEqual(self.output_names(), ["inner.jpg"])
        self.assertEqual(report.visited, 1)
        for record in records:
            message = record.getMessage()
            self.assertTrue(message.startswith("scanning") or "inner" in message, message)

    def test_nested_output_dir_is_not_rescanned(self):
        self.output = self.source / "saved"
        self.output.mkdir()
        write_jpeg(self.source / "wall", 1920, 1080)

        first, _ = self.run_pipeline()
        second, _ = self.run_pipeline()

        self.assertEqual(first.copied, 1)
        self.assertEqual(second.visited, 1)
        self.assertEqual(self.output_names(), ["wall.jpg"])

    def test_walk_failure_aborts_the_run(self):
        def broken_walk(top, onerror=None):
            onerror(FileNotFoundError(2, "No such file or directory", str(top)))
            return iter(())

        with mock.patch("spotsave.pipeline.os.walk", side_effect=broken_walk):
            with self.assertRaises(TraversalError):
                pipeline.run(self.source, self.output, DEFAULT, RunReporter())


class TestPreconditions(PipelineTestCase):
    def test_missing_source(self):
        with self.assertRaises(PreconditionError) as ctx:
            pipeline.run(self.source / "nope", self.output, DEFAULT)
        self.assertIn("doesn't exist", str(ctx.exception))

    def test_output_is_a_file(self):
        not_a_dir = self.output / "file"
        not_a_dir.write_text("x")
        with self.assertRaises(PreconditionError) as ctx:
            pipeline.run(self.source, not_a_dir, DEFAULT)
        self.assertIn("is not a directory", str(ctx.exception))

    def test_precondition_checked_before_any_inspection(self):
        write_jpeg(self.source / "wall", 1920, 1080)
        with mock.patch("spotsave.pipeline.assess") as spy:
            with self.assertRaises(PreconditionError):
                pipeline.run(self.source, self.output / "missing", DEFAULT)
        spy.assert_not_called()


class TestDryRun(PipelineTestCase):
    def test_dry_run_writes_nothing(self):
        write_jpeg(self.source / "wall", 1920, 1080)
        report, records = self.run_pipeline(dry_run=True)
        self.assertEqual(self.output_names(), [])
        self.assertEqual(report.counts[DRY_RUN], 1)
        self.assertTrue(any("would copy file" in r.getMessage() for r in records))

    def test_summary_lists_outcomes(self):
        write_jpeg(self.source / "wall", 1920, 1080)
        report, _ = self.run_pipeline(dry_run=True)
        summary = build_summary(report)
        self.assertIn("DRY_RUN: 1", summary)
        self.assertIn("files_visited: 1", summary)


if __name__ == "__main__":
    unittest.main()
