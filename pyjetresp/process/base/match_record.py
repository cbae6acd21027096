#!/usr/bin/env python3

"""
  Per-event output record of the response matching.

  Truth and reco values are stored side by side: index i of a truth list and
  index i of the corresponding reco list always describe the same pairing
  (a real match or a placeholder on the reco side).
"""

# Analysis utilities
from pyjetresp.process.base import common_base
from pyjetresp.process.base import acceptance
from pyjetresp.process.base import jet_info

################################################################
class RecordAlignmentError(Exception):
  pass

################################################################
class EventMatchRecord(common_base.CommonBase):

  # field name -> attribute of EventInfo / JetInfo / CstInfo
  event_fields = {'num_jets': 'num_jets', 'num_trks': 'num_trks', 'vtx_x': 'vtx_x', 'vtx_y': 'vtx_y', 'vtx_z': 'vtx_z'}
  jet_fields = {'jet_id': 'jet_id', 'jet_num_cst': 'num_cst', 'jet_ene': 'ene', 'jet_pt': 'pt',
                'jet_eta': 'eta', 'jet_phi': 'phi', 'jet_area': 'area'}
  cst_fields = {'cst_id': 'cst_id', 'cst_z': 'z', 'cst_dr': 'dr', 'cst_ene': 'ene',
                'cst_jt': 'jt', 'cst_eta': 'eta', 'cst_phi': 'phi'}
  match_fields = ['jet_match_frac', 'jet_match_dr', 'jet_match_qt']
  int_fields = ['num_jets', 'num_trks', 'jet_id', 'jet_num_cst', 'cst_id']

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, **kwargs):
    super(EventMatchRecord, self).__init__(**kwargs)
    self.truth = {}
    self.reco = {}
    for field in self.event_fields:
      self.truth[field] = None
      self.reco[field] = None
    for field in list(self.jet_fields) + list(self.cst_fields):
      self.truth[field] = []
      self.reco[field] = []
    self.match = {field: [] for field in self.match_fields}
    self.truth_extras = {}
    self.reco_extras = {}

  #---------------------------------------------------------------
  # Event-level (truth, reco) pair
  #---------------------------------------------------------------
  def pair(self, field):
    return (self.truth[field], self.reco[field])

  #---------------------------------------------------------------
  def n_jets(self):
    return len(self.truth['jet_id'])

  #---------------------------------------------------------------
  def n_csts(self):
    return sum(len(csts) for csts in self.truth['cst_id'])

  #---------------------------------------------------------------
  def set_event(self, truth_event, reco_event):
    for field, attr in self.event_fields.items():
      self.truth[field] = getattr(truth_event, attr)
      self.reco[field] = getattr(reco_event, attr)
    self.truth_extras = dict(truth_event.extras)
    self.reco_extras = dict(reco_event.extras)

  #---------------------------------------------------------------
  # Add one jet row with its constituent pairs
  #---------------------------------------------------------------
  def add_jet_row(self, truth_jet, reco_jet, cst_pairs, frac, dr, qt):
    for field, attr in self.jet_fields.items():
      self.truth[field].append(getattr(truth_jet, attr))
      self.reco[field].append(getattr(reco_jet, attr))
    for field, attr in self.cst_fields.items():
      self.truth[field].append([getattr(truth_cst, attr) for truth_cst, reco_cst in cst_pairs])
      self.reco[field].append([getattr(reco_cst, attr) for truth_cst, reco_cst in cst_pairs])
    self.match['jet_match_frac'].append(frac)
    self.match['jet_match_dr'].append(dr)
    self.match['jet_match_qt'].append(qt)

  #---------------------------------------------------------------
  # Check truth/reco lists have equal lengths at jet and constituent level
  #---------------------------------------------------------------
  def check_alignment(self):

    n_jets = self.n_jets()
    for field in list(self.jet_fields) + list(self.cst_fields):
      if len(self.truth[field]) != n_jets or len(self.reco[field]) != n_jets:
        raise RecordAlignmentError('{}: {} truth / {} reco entries for {} jets'.format(
                                   field, len(self.truth[field]), len(self.reco[field]), n_jets))
    for field in self.match_fields:
      if len(self.match[field]) != n_jets:
        raise RecordAlignmentError('{}: {} entries for {} jets'.format(field, len(self.match[field]), n_jets))

    n_csts = [len(csts) for csts in self.truth['cst_id']]
    for field in self.cst_fields:
      for ijet in range(n_jets):
        if len(self.truth[field][ijet]) != n_csts[ijet] or len(self.reco[field][ijet]) != n_csts[ijet]:
          raise RecordAlignmentError('{} jet {}: {} truth / {} reco constituents, expected {}'.format(
                                     field, ijet, len(self.truth[field][ijet]), len(self.reco[field][ijet]), n_csts[ijet]))

  #---------------------------------------------------------------
  # Flat {branch name: value} dict for the output tree
  #---------------------------------------------------------------
  def to_branches(self):

    branches = {}
    for field in list(self.event_fields) + list(self.jet_fields) + list(self.cst_fields):
      branches['{}_truth'.format(field)] = self.truth[field]
      branches['{}_reco'.format(field)] = self.reco[field]
    for field in self.match_fields:
      branches[field] = self.match[field]
    for name, value in self.truth_extras.items():
      branches['truth_{}'.format(name)] = value
    for name, value in self.reco_extras.items():
      branches['reco_{}'.format(name)] = value
    return branches

  #---------------------------------------------------------------
  # dtypes of the paired branches (lists may be empty in the first event)
  #---------------------------------------------------------------
  @classmethod
  def branch_dtypes(cls):

    dtypes = {}
    for field in list(cls.event_fields) + list(cls.jet_fields) + list(cls.cst_fields):
      dtype = 'int64' if field in cls.int_fields else 'float64'
      dtypes['{}_truth'.format(field)] = dtype
      dtypes['{}_reco'.format(field)] = dtype
    for field in cls.match_fields:
      dtypes[field] = 'float64'
    return dtypes

  #---------------------------------------------------------------
  # Branches holding one list per jet
  #---------------------------------------------------------------
  @classmethod
  def nested_branches(cls):
    return ['{}_{}'.format(field, level) for field in cls.cst_fields for level in ['truth', 'reco']]

################################################################
class MatchRecordBuilder(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #   keep_unmatched_cst: also write good truth constituents without
  #   a reco partner, paired with a placeholder constituent
  #---------------------------------------------------------------
  def __init__(self, keep_unmatched_cst=False, acceptance_filter=None, **kwargs):
    super(MatchRecordBuilder, self).__init__(**kwargs)
    self.keep_unmatched_cst = keep_unmatched_cst
    self.acceptance = acceptance_filter if acceptance_filter is not None else acceptance.AcceptanceFilter()
    self.reset()

  #---------------------------------------------------------------
  def reset(self):
    self.truth_event = None
    self.reco_event = None
    self.jet_matches = []

  #---------------------------------------------------------------
  def set_event(self, truth_event, reco_event):
    self.truth_event = truth_event
    self.reco_event = reco_event

  #---------------------------------------------------------------
  def add_jet_match(self, jet_match):
    self.jet_matches.append(jet_match)

  #---------------------------------------------------------------
  # Constituent pairs written for a jet row
  #---------------------------------------------------------------
  def cst_pairs(self, jet_match):

    pairs = jet_match.candidate.cst_pairs if jet_match.is_matched else []
    if not self.keep_unmatched_cst:
      return list(pairs)

    partners = {id(truth_cst): reco_cst for truth_cst, reco_cst in pairs}
    all_pairs = []
    for truth_cst in jet_match.truth.csts:
      if id(truth_cst) in partners:
        all_pairs.append((truth_cst, partners[id(truth_cst)]))
      elif self.acceptance.is_good_cst(truth_cst):
        all_pairs.append((truth_cst, jet_info.placeholder_cst()))
    return all_pairs

  #---------------------------------------------------------------
  def build(self):

    if self.truth_event is None or self.reco_event is None:
      raise RuntimeError('MatchRecordBuilder: set_event() must be called before build()')

    record = EventMatchRecord()
    record.set_event(self.truth_event, self.reco_event)
    for jet_match in self.jet_matches:
      if jet_match.is_matched:
        candidate = jet_match.candidate
        frac, dr, qt = candidate.frac, candidate.dr, candidate.qt
      else:
        frac = dr = qt = jet_info.PLACEHOLDER_VALUE
      record.add_jet_row(jet_match.truth, jet_match.reco(), self.cst_pairs(jet_match), frac, dr, qt)
    return record

  #---------------------------------------------------------------
  # Build the record, hand it to sink(record) and reset for the next event
  #---------------------------------------------------------------
  def emit(self, sink):

    record = self.build()
    record.check_alignment()
    sink(record)
    self.reset()
    return record
