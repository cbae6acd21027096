#!/usr/bin/env python3

"""
  Build the truth/reco jet response tree.

  Truth and reco jet trees are read event by event (truth entry i with reco
  entry i), truth jets are matched to reco jets (kinematic window + constituent
  ID overlap), and one record per event with aligned truth/reco jet and
  constituent lists is written to the output tree.

  QA histograms written next to the tree:
    hJetMatchingQA: bins [all truth jets, good truth jets, matched, unmatched]
    hNevents: number of processed events

  Usage:
    pyjetresp-response -t truth.root -r reco.root -c config/response_config.yaml -o ./TestOutput
"""

# General
import os
import sys
import math
import time
import argparse

# Data analysis
import numpy as np
import tqdm

# Analysis utilities
from pyjetresp.mputils import treewriter
from pyjetresp.mputils import mputils
from pyjetresp.process.base import process_base
from pyjetresp.process.base import process_io
from pyjetresp.process.base import acceptance
from pyjetresp.process.base import jet_matcher
from pyjetresp.process.base import match_record
from pyjetresp.process.base.messages import Msg, report

################################################################
class ProcessResponse(process_base.ProcessBase):

  range_parameters = ['jet_match_qt_range', 'jet_match_dr_range', 'frac_cst_match_range']
  qa_bin_labels = ['all', 'good', 'matched', 'unmatched']

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, input_file_truth='', input_file_reco='', config_file='', output_dir='', debug_level=0, **kwargs):

    # Initialize base class
    super(ProcessResponse, self).__init__(input_file_truth, input_file_reco, config_file, output_dir, debug_level, **kwargs)

    # Initialize configuration
    self.initialize_config()
    self.check_critical_parameters()

    self.aborted = False
    self.n_events = 0
    self.stats = jet_matcher.MatchStats()

  #---------------------------------------------------------------
  # Initialize config file into class members
  #---------------------------------------------------------------
  def initialize_config(self):

    # Call base class initialization
    config = process_base.ProcessBase.initialize_config(self)

    # Matching windows (exclusive bounds)
    self.jet_match_qt_range = config.get('jet_match_qt_range', [0., 10.])
    self.jet_match_dr_range = config.get('jet_match_dr_range', [0., 10.])
    self.frac_cst_match_range = config.get('frac_cst_match_range', [0., 1.])

    # Input
    self.input_format = config.get('input_format', 'standard')
    self.truth_tree_name = config.get('truth_tree_name', 'TruthJetTree')
    self.reco_tree_name = config.get('reco_tree_name', 'RecoJetTree')
    self.chunk_size = config.get('chunk_size', 1000)

    # Output
    self.output_file_name = config.get('output_file_name', 'response.root')
    self.output_tree_name = config.get('output_tree_name', 'ResponseTree')
    self.keep_unmatched_cst = config.get('keep_unmatched_cst', False)

    self.acceptance_config = config.get('acceptance', None)

  #---------------------------------------------------------------
  # Validate configuration before any event is read
  #---------------------------------------------------------------
  def check_critical_parameters(self):

    for name in self.range_parameters:
      value = getattr(self, name)
      try:
        low, high = [float(x) for x in value]
      except (TypeError, ValueError):
        raise process_base.ConfigError('{} must be a pair [low, high], got {}'.format(name, value))
      if math.isnan(low) or math.isnan(high) or not low < high:
        raise process_base.ConfigError('{} must satisfy low < high, got {}'.format(name, value))
      setattr(self, name, (low, high))

    if self.input_format not in ['standard', 'legacy']:
      raise process_base.ConfigError('input_format must be standard or legacy, got {}'.format(self.input_format))

    for name in ['chunk_size', 'event_number_max']:
      value = getattr(self, name)
      if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise process_base.ConfigError('{} must be a positive integer, got {}'.format(name, value))

    for name in ['truth_tree_name', 'reco_tree_name', 'output_file_name', 'output_tree_name']:
      value = getattr(self, name)
      if not isinstance(value, str) or not value:
        raise process_base.ConfigError('{} must be a non-empty string, got {}'.format(name, value))

    try:
      self.acceptance = acceptance.get_acceptance(self.acceptance_config)
    except ValueError as e:
      raise process_base.ConfigError(str(e)) from e

    self.output_file = os.path.join(self.output_dir, self.output_file_name)

  #---------------------------------------------------------------
  # Open the event source for the configured input format
  #---------------------------------------------------------------
  def open_event_source(self):

    return process_io.get_event_source(self.input_format,
                                       input_file_truth=self.input_file_truth,
                                       input_file_reco=self.input_file_reco,
                                       truth_tree_name=self.truth_tree_name,
                                       reco_tree_name=self.reco_tree_name,
                                       chunk_size=self.chunk_size,
                                       event_number_max=self.event_number_max,
                                       debug_level=self.debug_level)

  #---------------------------------------------------------------
  # Main processing function
  #   event_source: optional EventSource; by default the trees
  #   given on the command line are opened
  #---------------------------------------------------------------
  def process_response(self, event_source=None):

    self.start_time = time.time()
    self.aborted = False
    self.n_events = 0
    self.stats = jet_matcher.MatchStats()

    report(Msg.RunStart, truth=self.input_file_truth, reco=self.input_file_reco, input_format=self.input_format)
    report(Msg.ConfigLoaded, config=self.config_file, qt_range=self.jet_match_qt_range,
           dr_range=self.jet_match_dr_range, frac_range=self.frac_cst_match_range)

    if event_source is None:
      event_source = self.open_event_source()

    matcher = jet_matcher.JetMatcher(qt_range=self.jet_match_qt_range,
                                     dr_range=self.jet_match_dr_range,
                                     frac_range=self.frac_cst_match_range,
                                     acceptance_filter=self.acceptance,
                                     debug_level=self.debug_level)
    builder = match_record.MatchRecordBuilder(keep_unmatched_cst=self.keep_unmatched_cst,
                                              acceptance_filter=self.acceptance)
    with event_source:
      writer = treewriter.RTreeWriter(tree_name=self.output_tree_name,
                                      file_name=self.output_file,
                                      dtypes=match_record.EventMatchRecord.branch_dtypes(),
                                      nested=match_record.EventMatchRecord.nested_branches(),
                                      flush_every=self.chunk_size)

      def fill_record(record):
        writer.fill_branches(**record.to_branches())
        writer.fill_tree()

      try:
        pbar = tqdm.tqdm(event_source, total=len(event_source), desc='events', disable=self.debug_level > 1)
        for event_index, truth_event, reco_event in pbar:
          report(Msg.EventStart, debug_level=self.debug_level, event_index=event_index,
                 n_truth_jets=len(truth_event.jets), n_reco_jets=len(reco_event.jets))

          jet_matches, stats = matcher.match_event(truth_event, reco_event)

          builder.reset()
          builder.set_event(truth_event, reco_event)
          for jet_match in jet_matches:
            builder.add_jet_match(jet_match)
          builder.emit(fill_record)

          self.stats.merge(stats)
          self.n_events += 1
        pbar.close()
      except process_io.StreamReadError as e:
        self.aborted = True
        report(Msg.StreamReadFailed, stream=e.stream, event_index=e.event_index, reason=e.reason)
        report(Msg.RunAborted, event_index=e.event_index, n_events=self.n_events)
        raise
      finally:
        self.write_output(writer)

    print('--- {} seconds ---'.format(time.time() - self.start_time))

  #---------------------------------------------------------------
  # Write QA histograms and close the output file
  #---------------------------------------------------------------
  def write_output(self, writer):

    qa_counts = [self.stats.n_truth_jets, self.stats.n_good_truth_jets, self.stats.n_matched, self.stats.n_unmatched]
    writer.write_histogram('hJetMatchingQA', qa_counts, np.arange(len(self.qa_bin_labels) + 1))
    writer.write_histogram('hNevents', [self.n_events], [0., 1.])
    writer.write_and_close()

    report(Msg.RunSummary, n_events=self.n_events, n_good_truth_jets=self.stats.n_good_truth_jets,
           n_matched=self.stats.n_matched, n_unmatched=self.stats.n_unmatched)
    report(Msg.OutputSaved, file_name=self.output_file)

#---------------------------------------------------------------
# Command line entry point
#---------------------------------------------------------------
def main(argv=None):

  # Define arguments
  parser = argparse.ArgumentParser(description='Match truth and reco jets and write the response tree')
  parser.add_argument('-t', '--truthFile', action='store',
                      type=str, metavar='truthFile',
                      default='TruthJets.root',
                      help='Path of ROOT file containing the truth jet TTree')
  parser.add_argument('-r', '--recoFile', action='store',
                      type=str, metavar='recoFile',
                      default='RecoJets.root',
                      help='Path of ROOT file containing the reco jet TTree')
  parser.add_argument('-c', '--configFile', action='store',
                      type=str, metavar='configFile',
                      default='config/response_config.yaml',
                      help='Path of config file for the response matching')
  parser.add_argument('-o', '--outputDir', action='store',
                      type=str, metavar='outputDir',
                      default='./TestOutput',
                      help='Output directory for output to be written to')
  parser.add_argument('-d', '--debugLevel', action='store',
                      type=int, metavar='debugLevel',
                      default=0,
                      help='Debug level (0 = none, 3 = all)')

  # Parse the arguments
  args = parser.parse_args(argv)

  print('Configuring...')
  print('truthFile: \'{0}\''.format(args.truthFile))
  print('recoFile: \'{0}\''.format(args.recoFile))
  print('configFile: \'{0}\''.format(args.configFile))
  print('ouputDir: \'{0}\''.format(args.outputDir))

  # If invalid input or config file is given, exit
  for fname in [args.truthFile, args.recoFile, args.configFile]:
    if not os.path.exists(fname):
      mputils.perror('File \"{0}\" does not exist! Exiting!'.format(fname))
      return 1

  try:
    analysis = ProcessResponse(input_file_truth=args.truthFile, input_file_reco=args.recoFile,
                               config_file=args.configFile, output_dir=args.outputDir,
                               debug_level=args.debugLevel)
  except process_base.ConfigError as e:
    mputils.perror('configuration error:', e)
    return 1

  try:
    analysis.process_response()
  except process_io.StreamReadError:
    return 1
  except (OSError, KeyError) as e:
    mputils.perror('cannot open input:', e)
    return 1
  return 0

##################################################################
if __name__ == '__main__':
  sys.exit(main())
