"""
Tests for background analysis jobs.
"""

import shutil
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

from fastabiome import core
from fastabiome.config import get_default_config
from fastabiome.jobs import AnalysisJobManager


class TestAnalysisJobManager(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.fasta = Path(self.tmpdir) / "sample.fasta"
        self.fasta.write_text(">seq1\nACGT\n>seq2\nGGCC\n")
        self.manager = AnalysisJobManager(max_workers=2)

    def tearDown(self):
        self.manager.shutdown(wait=True)
        shutil.rmtree(self.tmpdir)

    def test_completed_job(self):
        job = self.manager.submit(self.fasta, "upload.fasta")

        result = job.future.result(timeout=30)

        self.assertEqual(self.manager.status(job.context.file_id), core.STATUS_COMPLETED)
        self.assertEqual(result['fileName'], "upload.fasta")
        self.assertIs(job.context.result, result)

    def test_failed_job(self):
        empty = Path(self.tmpdir) / "empty.fasta"
        empty.write_text("")

        job = self.manager.submit(empty)

        with self.assertRaises(core.AnalysisError):
            job.future.result(timeout=30)
        self.assertEqual(self.manager.status(job.context.file_id), core.STATUS_FAILED)
        self.assertIn("Invalid FASTA file", job.context.error)

    def test_default_name_and_explicit_id(self):
        job = self.manager.submit(str(self.fasta), file_id="file-1")
        job.future.result(timeout=30)

        self.assertEqual(job.context.file_name, "sample.fasta")
        self.assertIs(self.manager.get("file-1"), job)

    def test_duplicate_id_rejected(self):
        self.manager.submit(self.fasta, file_id="dup").future.result(timeout=30)

        with self.assertRaises(ValueError):
            self.manager.submit(self.fasta, file_id="dup")

    def test_unknown_id(self):
        self.assertIsNone(self.manager.get("nope"))
        self.assertIsNone(self.manager.status("nope"))
        self.assertFalse(self.manager.mark_failed("nope"))

    def test_several_files_tracked_independently(self):
        jobs = [self.manager.submit(self.fasta, f"file{i}.fasta") for i in range(4)]
        for job in jobs:
            job.future.result(timeout=30)

        contexts = self.manager.list_jobs()
        self.assertEqual(len(contexts), 4)
        self.assertEqual({c.status for c in contexts}, {core.STATUS_COMPLETED})
        self.assertEqual(len({c.file_id for c in contexts}), 4)

    def test_mark_failed_before_start_skips_analysis(self):
        gate = threading.Event()
        original = core.run_analysis

        def blocked(context, file_path, config_obj=None):
            gate.wait(timeout=30)
            return original(context, file_path, config_obj)

        manager = AnalysisJobManager(max_workers=1)
        try:
            with patch('fastabiome.jobs.core.run_analysis', side_effect=blocked) as mock_run:
                first = manager.submit(self.fasta, file_id="first")
                second = manager.submit(self.fasta, file_id="second")

                self.assertTrue(manager.mark_failed("second", "Cancelled by user"))
                gate.set()
                first.future.result(timeout=30)
                manager.shutdown(wait=True)

            self.assertEqual(mock_run.call_count, 1)
        finally:
            gate.set()
            manager.shutdown(wait=True)

        self.assertEqual(second.context.status, core.STATUS_FAILED)
        self.assertEqual(second.context.error, "Cancelled by user")

    def test_mark_failed_while_running_discards_result(self):
        started = threading.Event()
        gate = threading.Event()
        original = core.run_analysis

        def blocked(context, file_path, config_obj=None):
            started.set()
            gate.wait(timeout=30)
            return original(context, file_path, config_obj)

        with patch('fastabiome.jobs.core.run_analysis', side_effect=blocked):
            job = self.manager.submit(self.fasta, file_id="running")
            self.assertTrue(started.wait(timeout=30))

            self.assertTrue(self.manager.mark_failed("running", "Cancelled by user"))
            gate.set()
            outcome = job.future.result(timeout=30)

        self.assertIsNone(outcome)
        self.assertEqual(job.context.status, core.STATUS_FAILED)
        self.assertEqual(job.context.error, "Cancelled by user")
        self.assertIsNone(job.context.result)

    def test_cancelled_job_never_shows_completed(self):
        started = threading.Event()
        gate = threading.Event()
        original_analyze = core.analyze_fasta_file
        original_complete = core.AnalysisContext.mark_completed
        statuses_after_complete = []

        def blocked(*args, **kwargs):
            started.set()
            gate.wait(timeout=30)
            return original_analyze(*args, **kwargs)

        def spy_complete(context, result):
            applied = original_complete(context, result)
            statuses_after_complete.append((context.status, context.result is None))
            return applied

        with patch('fastabiome.core.analyze_fasta_file', side_effect=blocked), \
                patch.object(core.AnalysisContext, 'mark_completed', autospec=True, side_effect=spy_complete):
            job = self.manager.submit(self.fasta, file_id="spied")
            self.assertTrue(started.wait(timeout=30))

            self.assertTrue(self.manager.mark_failed("spied", "Cancelled by user"))
            gate.set()
            outcome = job.future.result(timeout=30)

        self.assertIsNone(outcome)
        self.assertEqual(statuses_after_complete, [(core.STATUS_FAILED, True)])
        self.assertEqual(job.context.status, core.STATUS_FAILED)
        self.assertEqual(job.context.error, "Cancelled by user")

    def test_mark_failed_finished_job(self):
        job = self.manager.submit(self.fasta)
        job.future.result(timeout=30)

        self.assertFalse(self.manager.mark_failed(job.context.file_id))
        self.assertEqual(job.context.status, core.STATUS_COMPLETED)

    def test_remove(self):
        job = self.manager.submit(self.fasta)
        job.future.result(timeout=30)

        self.assertTrue(self.manager.remove(job.context.file_id))
        self.assertIsNone(self.manager.get(job.context.file_id))

    def test_config_seed_applies_to_jobs(self):
        content = "".join(f">unlabelled{i}\n{'ACGT' * 200}\n" for i in range(10))
        path = Path(self.tmpdir) / "random.fasta"
        path.write_text(content)
        cfg = get_default_config().update(taxonomy__seed=3)

        with AnalysisJobManager(cfg) as manager:
            first = manager.submit(path).future.result(timeout=30)
            second = manager.submit(path).future.result(timeout=30)

        self.assertEqual(first['hierarchicalDistribution'], second['hierarchicalDistribution'])


if __name__ == '__main__':
    unittest.main()
