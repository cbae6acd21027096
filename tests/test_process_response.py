# coding: utf-8


__all__ = ["ProcessResponseConfigTests", "ProcessResponseRunTests", "ProcessResponseMainTests"]

import io
import os
import shutil
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

import awkward as ak
import numpy as np
import uproot
import yaml

from pyjetresp.process.base.process_base import ConfigError
from pyjetresp.process.base.process_io import EventListSource, StreamReadError
from pyjetresp.process.base.jet_info import PLACEHOLDER_ID
from pyjetresp.process.process_response import ProcessResponse, main

from .helpers import make_event, make_jet, write_standard_tree


class FailingSource(EventListSource):
    """
    Raises a read failure on the reco stream at *fail_at*.
    """

    def __init__(self, fail_at, **kwargs):
        super().__init__(**kwargs)
        self.fail_at = fail_at
        self.closed = False

    def get_event_pair(self, event_index):
        if event_index == self.fail_at:
            raise StreamReadError("reco", event_index, "basket decompression failed")
        return super().get_event_pair(event_index)

    def close(self):
        self.closed = True


def sample_events():
    return [
        (make_event([make_jet(0, 20.0, 0.1, 0.2, cst_ids=[1, 2, 3]), make_jet(1, 15.0, -1.0, 2.0, cst_ids=[7])],
                    vtx=(0.0, 0.0, 1.0)),
         make_event([make_jet(10, 22.0, 0.12, 0.19, cst_ids=[1, 2, 9])], vtx=(0.0, 0.0, -1.0))),
        (make_event([]), make_event([make_jet(11, 5.0, 0.0, 0.0, cst_ids=[4])])),
        (make_event([make_jet(0, 0.0, 0.0, 0.0, cst_ids=[1])]), make_event([])),
        (make_event([make_jet(0, 30.0, 0.5, 3.1, cst_ids=[1, 2])]),
         make_event([make_jet(12, 29.0, 0.52, -3.12, cst_ids=[2, 1])])),
    ]


class ResponseTestBase(unittest.TestCase):

    base_config = {
        "jet_match_qt_range": [0.8, 1.2],
        "jet_match_dr_range": [0.0, 0.4],
        "frac_cst_match_range": [0.3, 1.01],
    }

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.output_dir = os.path.join(self.tmp_dir, "output")

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def write_config(self, **kwargs):
        config = dict(self.base_config)
        config.update(kwargs)
        config_file = os.path.join(self.tmp_dir, "config.yaml")
        with open(config_file, "w") as f:
            yaml.safe_dump(config, f)
        return config_file

    def make_analysis(self, **kwargs):
        return ProcessResponse(config_file=self.write_config(**kwargs), output_dir=self.output_dir)

    def read_output(self, analysis):
        with uproot.open(analysis.output_file) as f:
            tree = f[analysis.output_tree_name]
            arrays = ak.to_list(tree.arrays(library="ak"))
            qa = f["hJetMatchingQA"].to_numpy()[0]
            nevents = f["hNevents"].to_numpy()[0]
        return arrays, qa, nevents


class ProcessResponseConfigTests(ResponseTestBase):

    def test_defaults(self):
        analysis = ProcessResponse(config_file=self.write_config(), output_dir=self.output_dir)
        self.assertEqual(analysis.jet_match_qt_range, (0.8, 1.2))
        self.assertEqual(analysis.input_format, "standard")
        self.assertEqual(analysis.output_tree_name, "ResponseTree")
        self.assertEqual(analysis.event_number_max, sys.maxsize)
        self.assertFalse(analysis.keep_unmatched_cst)
        self.assertTrue(os.path.isdir(self.output_dir))
        self.assertEqual(analysis.output_file, os.path.join(self.output_dir, "response.root"))
        # kinematic helpers live on the matcher only
        self.assertFalse(hasattr(analysis, "utils"))

        config_file = os.path.join(self.tmp_dir, "empty.yaml")
        with open(config_file, "w") as f:
            f.write("")
        analysis = ProcessResponse(config_file=config_file, output_dir=self.output_dir)
        self.assertEqual(analysis.jet_match_qt_range, (0.0, 10.0))
        self.assertEqual(analysis.jet_match_dr_range, (0.0, 10.0))
        self.assertEqual(analysis.frac_cst_match_range, (0.0, 1.0))

    def test_invalid_ranges(self):
        for bad in [[1.2, 0.8], [1.0, 1.0], [0.5], "wide", [0.0, float("nan")]]:
            with self.assertRaises(ConfigError):
                self.make_analysis(jet_match_qt_range=bad)
        with self.assertRaises(ConfigError):
            self.make_analysis(frac_cst_match_range=[1.0, 0.2])
        # infinite bounds are allowed
        analysis = self.make_analysis(jet_match_dr_range=[0.0, float("inf")])
        self.assertEqual(analysis.jet_match_dr_range, (0.0, float("inf")))

    def test_invalid_options(self):
        with self.assertRaises(ConfigError):
            self.make_analysis(input_format="csv")
        with self.assertRaises(ConfigError):
            self.make_analysis(chunk_size=0)
        with self.assertRaises(ConfigError):
            self.make_analysis(event_number_max=-1)
        with self.assertRaises(ConfigError):
            self.make_analysis(acceptance={"jet_mass": [0.0, 1.0]})
        with self.assertRaises(ConfigError):
            self.make_analysis(output_tree_name="")

    def test_unreadable_config(self):
        with self.assertRaises(ConfigError):
            ProcessResponse(config_file=os.path.join(self.tmp_dir, "missing.yaml"), output_dir=self.output_dir)
        config_file = os.path.join(self.tmp_dir, "list.yaml")
        with open(config_file, "w") as f:
            f.write("- 1\n- 2\n")
        with self.assertRaises(ConfigError):
            ProcessResponse(config_file=config_file, output_dir=self.output_dir)


class ProcessResponseRunTests(ResponseTestBase):

    def run_quietly(self, analysis, source):
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()) as err:
            analysis.process_response(source)
        return err.getvalue()

    def test_process_events(self):
        analysis = self.make_analysis()
        self.run_quietly(analysis, EventListSource(events=sample_events()))
        self.assertFalse(analysis.aborted)
        self.assertEqual(analysis.n_events, 4)

        arrays, qa, nevents = self.read_output(analysis)
        self.assertEqual(len(arrays), 4)
        self.assertEqual(nevents.tolist(), [4.0])
        # all, good, matched, unmatched
        self.assertEqual(qa.tolist(), [4.0, 3.0, 2.0, 1.0])

        first = arrays[0]
        self.assertEqual(first["jet_id_truth"], [0, 1])
        self.assertEqual(first["jet_id_reco"], [10, PLACEHOLDER_ID])
        self.assertEqual(first["vtx_z_reco"], -1.0)
        self.assertEqual(first["cst_id_truth"], [1, 2])
        self.assertEqual(first["cst_id_reco"], [1, 2])
        self.assertEqual(first["cst_id_truth_index"], [0, 0])

        # event without truth jets and event with a rejected truth jet give empty rows
        self.assertEqual(arrays[1]["jet_id_truth"], [])
        self.assertEqual(arrays[2]["jet_id_truth"], [])

        # match across the phi = +-pi boundary
        self.assertEqual(arrays[3]["jet_id_reco"], [12])
        self.assertAlmostEqual(arrays[3]["jet_match_frac"][0], 1.0)

    def test_deterministic_output(self):
        outputs = []
        for i in range(2):
            analysis = self.make_analysis(output_file_name="response_{}.root".format(i))
            self.run_quietly(analysis, EventListSource(events=sample_events()))
            outputs.append(self.read_output(analysis)[0])
        self.assertEqual(outputs[0], outputs[1])

    def test_keep_unmatched_cst(self):
        analysis = self.make_analysis(keep_unmatched_cst=True)
        self.run_quietly(analysis, EventListSource(events=sample_events()))
        arrays, qa, nevents = self.read_output(analysis)
        self.assertEqual(arrays[0]["cst_id_truth"], [1, 2, 3, 7])
        self.assertEqual(arrays[0]["cst_id_reco"], [1, 2, PLACEHOLDER_ID, PLACEHOLDER_ID])
        self.assertEqual(arrays[0]["cst_id_reco_index"], [0, 0, 0, 1])

    def test_stream_read_failure_aborts(self):
        analysis = self.make_analysis()
        source = FailingSource(fail_at=2, events=sample_events())
        err = io.StringIO()
        with redirect_stdout(io.StringIO()), redirect_stderr(err):
            with self.assertRaises(StreamReadError) as ctx:
                analysis.process_response(source)

        self.assertTrue(analysis.aborted)
        self.assertTrue(source.closed)
        self.assertEqual(ctx.exception.event_index, 2)
        self.assertEqual(analysis.n_events, 2)
        self.assertIn("reco stream at event 2", err.getvalue())

        # events before the failure are still written
        arrays, qa, nevents = self.read_output(analysis)
        self.assertEqual(len(arrays), 2)
        self.assertEqual(nevents.tolist(), [2.0])

    def test_source_closed_when_output_fails(self):
        analysis = self.make_analysis()
        analysis.output_file = os.path.join(self.tmp_dir, "no_such_dir", "response.root")
        source = FailingSource(fail_at=None, events=sample_events())
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
            with self.assertRaises(OSError):
                analysis.process_response(source)
        self.assertTrue(source.closed)
        self.assertEqual(analysis.n_events, 0)

    def test_acceptance_from_config(self):
        analysis = self.make_analysis(acceptance={"jet_pt": [18.0, 100.0]})
        self.run_quietly(analysis, EventListSource(events=sample_events()))
        arrays, qa, nevents = self.read_output(analysis)
        self.assertEqual(arrays[0]["jet_id_truth"], [0])
        self.assertEqual(qa.tolist(), [4.0, 2.0, 2.0, 0.0])


class ProcessResponseMainTests(ResponseTestBase):

    def setUp(self):
        super().setUp()
        events = sample_events()
        self.truth_file = os.path.join(self.tmp_dir, "truth.root")
        self.reco_file = os.path.join(self.tmp_dir, "reco.root")
        write_standard_tree(self.truth_file, "TruthJetTree", [truth for truth, reco in events])
        write_standard_tree(self.reco_file, "RecoJetTree", [reco for truth, reco in events])

    def run_main(self, argv):
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
            return main(argv)

    def test_main(self):
        config_file = self.write_config()
        status = self.run_main(["-t", self.truth_file, "-r", self.reco_file, "-c", config_file, "-o", self.output_dir])
        self.assertEqual(status, 0)
        with uproot.open(os.path.join(self.output_dir, "response.root")) as f:
            self.assertEqual(f["ResponseTree"].num_entries, 4)
            jet_id_reco = f["ResponseTree"]["jet_id_reco"].array(library="ak")
        self.assertEqual(ak.to_list(jet_id_reco[0]), [10, PLACEHOLDER_ID])

    def test_main_errors(self):
        config_file = self.write_config()
        missing = os.path.join(self.tmp_dir, "missing.root")
        self.assertEqual(self.run_main(["-t", missing, "-r", self.reco_file, "-c", config_file, "-o", self.output_dir]), 1)
        bad_config = self.write_config(jet_match_dr_range=[1.0, 0.0])
        self.assertEqual(self.run_main(["-t", self.truth_file, "-r", self.reco_file, "-c", bad_config, "-o", self.output_dir]), 1)

        # reco file with fewer events: the run is aborted
        write_standard_tree(self.reco_file, "RecoJetTree", [reco for truth, reco in sample_events()][:3])
        config_file = self.write_config()
        self.assertEqual(self.run_main(["-t", self.truth_file, "-r", self.reco_file, "-c", config_file, "-o", self.output_dir]), 1)
        with uproot.open(os.path.join(self.output_dir, "response.root")) as f:
            self.assertEqual(f["ResponseTree"].num_entries, 3)
            np.testing.assert_array_equal(f["hNevents"].to_numpy()[0], [3.0])
