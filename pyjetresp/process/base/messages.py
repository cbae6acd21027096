#!/usr/bin/env python3

"""
  Diagnostics emitted by the response-matching pipeline.

  Each Msg member carries (level, template). Levels 'info', 'warning' and
  'error' are always printed; a debug member is written as ('debug', n) and
  only printed when the configured debug_level is >= n.

    report(Msg.CandidateGated, debug_level=self.debug_level, truth_id=1, reco_id=2, qt=0.5, dr=0.1)
"""

# General
import enum

# Printers
from pyjetresp.mputils import mputils

################################################################
class Msg(enum.Enum):

  RunStart = ('info', 'response matching: truth={truth} reco={reco} format={input_format}')
  ConfigLoaded = ('info', 'config {config}: qt range {qt_range}, dr range {dr_range}, fraction range {frac_range}')
  StreamOpened = (('debug', 1), 'opened {stream} stream {file_name} ({n_entries} entries)')
  StreamLengthMismatch = ('warning', 'truth stream has {n_truth} entries, reco stream has {n_reco}')
  EventStart = (('debug', 2), 'event {event_index}: {n_truth_jets} truth jets, {n_reco_jets} reco jets')
  TruthJetRejected = (('debug', 2), 'truth jet {truth_id} fails acceptance')
  CandidateGated = (('debug', 3), 'truth jet {truth_id} / reco jet {reco_id}: qt={qt:.3f} dr={dr:.3f} outside matching window')
  CandidateFractionRejected = (('debug', 3), 'truth jet {truth_id} / reco jet {reco_id}: constituent fraction {frac:.3f} outside range')
  MatchFound = (('debug', 2), 'truth jet {truth_id} matched to reco jet {reco_id} (frac={frac:.3f}, qt={qt:.3f}, dr={dr:.3f})')
  NoMatch = (('debug', 2), 'truth jet {truth_id}: no matching reco jet')
  StreamReadFailed = ('error', 'failed to read {stream} stream at event {event_index}: {reason}')
  RunAborted = ('error', 'event loop aborted at event {event_index} ({n_events} events processed)')
  RunSummary = ('info', '{n_events} events: {n_good_truth_jets} good truth jets, {n_matched} matched, {n_unmatched} unmatched')
  OutputSaved = ('info', 'output saved to {file_name}')

  #---------------------------------------------------------------
  @property
  def level(self):
    return self.value[0]

  #---------------------------------------------------------------
  @property
  def template(self):
    return self.value[1]

  #---------------------------------------------------------------
  def format(self, **fields):
    return self.template.format(**fields)

_printers = {'info': mputils.pinfo, 'warning': mputils.pwarning, 'error': mputils.perror}

#---------------------------------------------------------------
# Print a diagnostic with the printer for its level.
# Returns True if something was printed.
#---------------------------------------------------------------
def report(msg, debug_level=0, file=None, **fields):

  level = msg.level
  if isinstance(level, tuple):
    if debug_level < level[1]:
      return False
    mputils.pdebug(msg.format(**fields), file=file)
    return True
  _printers[level](msg.format(**fields), file=file)
  return True
