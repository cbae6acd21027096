#!/usr/bin/env python3

"""
  Truth/reco jet matcher.

  For each good truth jet (input order) all good reco jets are scanned (input order):
    1. kinematic gate: qt = pt_reco/pt_truth and dR must lie inside the
       (exclusive) matching windows; gated candidates are never looked at again
    2. constituents of the two jets are paired by ID, and the fraction of good
       truth constituents with a partner must lie inside the (exclusive) fraction range
    3. the candidate replaces the current best one only if its fraction is strictly
       larger, so on ties the first candidate in input order is kept

  A reco jet may be selected by several truth jets: matching is greedy per truth jet.
"""

# Analysis utilities
from pyjetresp.process.base import common_base
from pyjetresp.process.base import process_utils
from pyjetresp.process.base import acceptance
from pyjetresp.process.base import jet_info
from pyjetresp.process.base.messages import Msg, report

################################################################
class MatchStats(common_base.CommonBase):

  counters = ['n_truth_jets', 'n_good_truth_jets', 'n_matched', 'n_unmatched', 'n_candidates_gated']

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, **kwargs):
    for counter in self.counters:
      setattr(self, counter, 0)
    super(MatchStats, self).__init__(**kwargs)

  #---------------------------------------------------------------
  # Add counters of another MatchStats (e.g. per-event into run totals)
  #---------------------------------------------------------------
  def merge(self, other):
    for counter in self.counters:
      setattr(self, counter, getattr(self, counter) + getattr(other, counter))
    return self

  #---------------------------------------------------------------
  def as_dict(self):
    return {counter: getattr(self, counter) for counter in self.counters}

################################################################
class JetMatcher(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, qt_range=(0., 10.), dr_range=(0., 10.), frac_range=(0., 1.), acceptance_filter=None, debug_level=0, **kwargs):
    super(JetMatcher, self).__init__(**kwargs)
    self.qt_range = tuple(qt_range)
    self.dr_range = tuple(dr_range)
    self.frac_range = tuple(frac_range)
    self.acceptance = acceptance_filter if acceptance_filter is not None else acceptance.AcceptanceFilter()
    self.debug_level = debug_level
    self.utils = process_utils.ProcessUtils()

  #---------------------------------------------------------------
  # Jet-level kinematic gate
  #---------------------------------------------------------------
  def is_jet_good_match(self, qt, dr):
    return self.utils.is_in_range(qt, self.qt_range) and self.utils.is_in_range(dr, self.dr_range)

  #---------------------------------------------------------------
  def is_frac_good_match(self, frac):
    return self.utils.is_in_range(frac, self.frac_range)

  #---------------------------------------------------------------
  # Pair good truth constituents with good reco constituents by ID.
  # For each truth constituent the first reco constituent with the
  # same ID is taken.
  #---------------------------------------------------------------
  def match_constituents(self, truth_jet, reco_jet):

    reco_csts = [cst for cst in reco_jet.csts if self.acceptance.is_good_cst(cst)]
    cst_pairs = []
    for truth_cst in truth_jet.csts:
      if not self.acceptance.is_good_cst(truth_cst):
        continue
      for reco_cst in reco_csts:
        if reco_cst.cst_id == truth_cst.cst_id:
          cst_pairs.append((truth_cst, reco_cst))
          break
    return cst_pairs

  #---------------------------------------------------------------
  # Fraction of good truth constituents with a reco partner
  # (0 if the truth jet has no good constituents)
  #---------------------------------------------------------------
  def cst_match_fraction(self, truth_jet, cst_pairs):

    n_good_cst = sum(1 for cst in truth_jet.csts if self.acceptance.is_good_cst(cst))
    if n_good_cst == 0:
      return 0.
    return len(cst_pairs) / n_good_cst

  #---------------------------------------------------------------
  # Find the best reco jet for a (good) truth jet
  #---------------------------------------------------------------
  def match_jet(self, truth_jet, reco_jets, stats=None):

    if stats is None:
      stats = MatchStats()

    has_good_cst = any(self.acceptance.is_good_cst(cst) for cst in truth_jet.csts)
    best = None
    for reco_jet in reco_jets:
      if not self.acceptance.is_good_jet(reco_jet):
        continue

      dr = self.utils.delta_R(reco_jet, truth_jet)
      qt = self.utils.qt_ratio(reco_jet, truth_jet)
      if not self.is_jet_good_match(qt, dr):
        stats.n_candidates_gated += 1
        report(Msg.CandidateGated, debug_level=self.debug_level,
               truth_id=truth_jet.jet_id, reco_id=reco_jet.jet_id, qt=qt, dr=dr)
        continue

      cst_pairs = []
      frac = 0.
      if has_good_cst:
        cst_pairs = self.match_constituents(truth_jet, reco_jet)
        frac = self.cst_match_fraction(truth_jet, cst_pairs)
      if not self.is_frac_good_match(frac):
        report(Msg.CandidateFractionRejected, debug_level=self.debug_level,
               truth_id=truth_jet.jet_id, reco_id=reco_jet.jet_id, frac=frac)
        continue

      if best is None or frac > best.frac:
        best = jet_info.MatchCandidate(jet=reco_jet, dr=dr, qt=qt, cst_pairs=cst_pairs, frac=frac)

    if best is None:
      stats.n_unmatched += 1
      report(Msg.NoMatch, debug_level=self.debug_level, truth_id=truth_jet.jet_id)
    else:
      stats.n_matched += 1
      report(Msg.MatchFound, debug_level=self.debug_level, truth_id=truth_jet.jet_id,
             reco_id=best.jet.jet_id, frac=best.frac, qt=best.qt, dr=best.dr)
    return jet_info.JetMatch(truth=truth_jet, candidate=best)

  #---------------------------------------------------------------
  # Match all truth jets of an event.
  # Returns (list of JetMatch, one per good truth jet in input order; MatchStats)
  #---------------------------------------------------------------
  def match_event(self, truth_event, reco_event):

    stats = MatchStats()
    jet_matches = []
    for truth_jet in truth_event.jets:
      stats.n_truth_jets += 1
      if not self.acceptance.is_good_jet(truth_jet):
        report(Msg.TruthJetRejected, debug_level=self.debug_level, truth_id=truth_jet.jet_id)
        continue
      stats.n_good_truth_jets += 1
      jet_matches.append(self.match_jet(truth_jet, reco_event.jets, stats))
    return jet_matches, stats
