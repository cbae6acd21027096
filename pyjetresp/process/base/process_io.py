#!/usr/bin/env python3

"""
  Event sources: iterate paired (truth, reco) events as EventInfo objects.

  Truth entry i is paired with reco entry i; the number of events is the
  number of truth entries (optionally capped by event_number_max).
  A failure to read either stream raises StreamReadError, which ends the run.

  Two tree layouts are supported:
    - standard: snake_case branches, constituents stored flat per event with
      a 'cst_jet_index' branch giving the parent jet of each constituent
    - legacy: the jet-tree layout with CamelCase branches and one vector of
      constituents per jet (e.g. JetPt, CstZ, CstMatchID)
"""

# General
import sys

# Data analysis
import uproot

# Analysis utilities
from pyjetresp.mputils import treereader
from pyjetresp.process.base import common_base
from pyjetresp.process.base import jet_info
from pyjetresp.process.base.messages import Msg, report

################################################################
class StreamReadError(Exception):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, stream, event_index, reason):
    self.stream = stream
    self.event_index = event_index
    self.reason = reason
    super(StreamReadError, self).__init__('failed to read {} stream at event {}: {}'.format(stream, event_index, reason))

################################################################
class EventSource(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, event_number_max=sys.maxsize, **kwargs):
    super(EventSource, self).__init__(**kwargs)
    self.event_number_max = event_number_max

  #---------------------------------------------------------------
  # Number of truth entries available
  #---------------------------------------------------------------
  def n_entries(self):
    raise NotImplementedError

  #---------------------------------------------------------------
  # Return (truth EventInfo, reco EventInfo) for entry i
  #---------------------------------------------------------------
  def get_event_pair(self, event_index):
    raise NotImplementedError

  #---------------------------------------------------------------
  def __len__(self):
    return min(self.n_entries(), self.event_number_max)

  #---------------------------------------------------------------
  def __iter__(self):
    for event_index in range(len(self)):
      truth_event, reco_event = self.get_event_pair(event_index)
      yield event_index, truth_event, reco_event

  #---------------------------------------------------------------
  def close(self):
    pass

  #---------------------------------------------------------------
  def __enter__(self):
    return self

  #---------------------------------------------------------------
  def __exit__(self, exc_type, exc_value, traceback):
    self.close()
    return False

################################################################
class EventListSource(EventSource):

  #---------------------------------------------------------------
  # Constructor
  #   events: list of (truth EventInfo, reco EventInfo)
  #---------------------------------------------------------------
  def __init__(self, events=None, **kwargs):
    super(EventListSource, self).__init__(**kwargs)
    self.events = list(events) if events is not None else []

  #---------------------------------------------------------------
  def n_entries(self):
    return len(self.events)

  #---------------------------------------------------------------
  def get_event_pair(self, event_index):
    return self.events[event_index]

################################################################
class TreeEventSource(EventSource):

  # attribute -> branch name, per stream
  branch_maps = {
    'truth': {
      'event': {'num_jets': 'num_jets', 'num_trks': 'num_trks', 'vtx_x': 'vtx_x', 'vtx_y': 'vtx_y', 'vtx_z': 'vtx_z'},
      'jet': {'jet_id': 'jet_id', 'num_cst': 'jet_num_cst', 'ene': 'jet_ene', 'pt': 'jet_pt',
              'eta': 'jet_eta', 'phi': 'jet_phi', 'area': 'jet_area'},
      'cst': {'cst_id': 'cst_id', 'z': 'cst_z', 'dr': 'cst_dr', 'ene': 'cst_ene',
              'jt': 'cst_jt', 'eta': 'cst_eta', 'phi': 'cst_phi'},
      'extra': {},
    },
  }
  branch_maps['reco'] = branch_maps['truth']
  cst_jet_index = 'cst_jet_index'
  default_tree_names = {'truth': 'TruthJetTree', 'reco': 'RecoJetTree'}

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, input_file_truth='', input_file_reco='', truth_tree_name=None, reco_tree_name=None,
               chunk_size=1000, debug_level=0, **kwargs):
    super(TreeEventSource, self).__init__(**kwargs)
    self.input_files = {'truth': input_file_truth, 'reco': input_file_reco}
    self.tree_names = {'truth': truth_tree_name or self.default_tree_names['truth'],
                       'reco': reco_tree_name or self.default_tree_names['reco']}
    self.chunk_size = chunk_size
    self.debug_level = debug_level

    self.readers = {}
    try:
      for stream in ['truth', 'reco']:
        self.readers[stream] = self.open_stream(stream)
    except Exception:
      self.close()
      raise

    n_truth = len(self.readers['truth'])
    n_reco = len(self.readers['reco'])
    if n_truth != n_reco:
      report(Msg.StreamLengthMismatch, n_truth=n_truth, n_reco=n_reco)

  #---------------------------------------------------------------
  # Open tree reader for a stream, with all branches of its map
  #---------------------------------------------------------------
  def open_stream(self, stream):

    branch_map = self.branch_maps[stream]
    branches = list(branch_map['event'].values()) + list(branch_map['jet'].values()) + list(branch_map['cst'].values())
    branches += self.extra_read_branches(stream)
    reader = treereader.RTreeReader(file_name=self.input_files[stream],
                                    tree_name=self.tree_names[stream],
                                    name='{}_reader'.format(stream),
                                    branches=branches,
                                    optional_branches=list(branch_map['extra'].values()),
                                    chunk_size=self.chunk_size)
    report(Msg.StreamOpened, debug_level=self.debug_level, stream=stream,
           file_name=self.input_files[stream], n_entries=len(reader))
    return reader

  #---------------------------------------------------------------
  # Layout specific branches that are not attributes
  #---------------------------------------------------------------
  def extra_read_branches(self, stream):
    return [self.cst_jet_index]

  #---------------------------------------------------------------
  def n_entries(self):
    return len(self.readers['truth'])

  #---------------------------------------------------------------
  def get_event_pair(self, event_index):
    truth_event = self.read_event('truth', event_index)
    reco_event = self.read_event('reco', event_index)
    return truth_event, reco_event

  #---------------------------------------------------------------
  # Read and convert one entry; any failure becomes a StreamReadError
  #---------------------------------------------------------------
  def read_event(self, stream, event_index):

    reader = self.readers[stream]
    if event_index >= len(reader):
      raise StreamReadError(stream, event_index, 'stream has only {} entries'.format(len(reader)))
    try:
      entry = reader.get_entry(event_index)
      return self.build_event(stream, entry)
    except (OSError, ValueError, KeyError, IndexError, TypeError, uproot.deserialization.DeserializationError) as e:
      raise StreamReadError(stream, event_index, '{}: {}'.format(type(e).__name__, e)) from e

  #---------------------------------------------------------------
  # Build EventInfo from a dict of branch values
  #---------------------------------------------------------------
  def build_event(self, stream, entry):

    branch_map = self.branch_maps[stream]
    jet_fields = branch_map['jet']
    cst_fields = branch_map['cst']

    n_jets = len(entry[jet_fields['jet_id']])
    for attr, bname in jet_fields.items():
      if len(entry[bname]) != n_jets:
        raise ValueError('branch {} has {} values for {} jets'.format(bname, len(entry[bname]), n_jets))

    csts = self.group_csts(entry, cst_fields, n_jets)
    jets = []
    for ijet in range(n_jets):
      jet_kwargs = {attr: entry[bname][ijet] for attr, bname in jet_fields.items()}
      jets.append(jet_info.JetInfo(csts=csts[ijet], **jet_kwargs))

    event_kwargs = {attr: entry[bname] for attr, bname in branch_map['event'].items()}
    extras = {name: entry[bname] for name, bname in branch_map['extra'].items() if bname in entry}
    return jet_info.EventInfo(jets=jets, extras=extras, **event_kwargs)

  #---------------------------------------------------------------
  # Constituents are flat per event, parent jet from cst_jet_index
  #---------------------------------------------------------------
  def group_csts(self, entry, cst_fields, n_jets):

    jet_index = entry[self.cst_jet_index]
    for bname in cst_fields.values():
      if len(entry[bname]) != len(jet_index):
        raise ValueError('branch {} has {} values for {} constituents'.format(bname, len(entry[bname]), len(jet_index)))

    csts = [[] for i in range(n_jets)]
    for icst, ijet in enumerate(jet_index):
      if not 0 <= ijet < n_jets:
        raise IndexError('constituent {} points to jet {} ({} jets)'.format(icst, ijet, n_jets))
      cst_kwargs = {attr: entry[bname][icst] for attr, bname in cst_fields.items()}
      csts[ijet].append(jet_info.CstInfo(**cst_kwargs))
    return csts

  #---------------------------------------------------------------
  def close(self):
    for reader in self.readers.values():
      reader.close()
    self.readers = {}

################################################################
class LegacyTreeEventSource(TreeEventSource):

  branch_maps = {
    'truth': {
      'event': {'num_jets': 'EvtNumJets', 'num_trks': 'EvtNumChrgPars',
                'vtx_x': 'EvtVtxX', 'vtx_y': 'EvtVtxY', 'vtx_z': 'EvtVtxZ'},
      'jet': {'jet_id': 'JetID', 'num_cst': 'JetNumCst', 'ene': 'JetEnergy', 'pt': 'JetPt',
              'eta': 'JetEta', 'phi': 'JetPhi', 'area': 'JetArea'},
      'cst': {'cst_id': 'CstID', 'z': 'CstZ', 'dr': 'CstDr', 'ene': 'CstEnergy',
              'jt': 'CstJt', 'eta': 'CstEta', 'phi': 'CstPhi'},
      'extra': {'parton3_id': 'Parton3_ID', 'parton4_id': 'Parton4_ID',
                'parton3_mom_x': 'Parton3_MomX', 'parton3_mom_y': 'Parton3_MomY', 'parton3_mom_z': 'Parton3_MomZ',
                'parton4_mom_x': 'Parton4_MomX', 'parton4_mom_y': 'Parton4_MomY', 'parton4_mom_z': 'Parton4_MomZ',
                'sum_par': 'EvtSumPar'},
    },
    'reco': {
      'event': {'num_jets': 'EvtNumJets', 'num_trks': 'EvtNumTrks',
                'vtx_x': 'EvtVtxX', 'vtx_y': 'EvtVtxY', 'vtx_z': 'EvtVtxZ'},
      'jet': {'jet_id': 'JetID', 'num_cst': 'JetNumCst', 'ene': 'JetEnergy', 'pt': 'JetPt',
              'eta': 'JetEta', 'phi': 'JetPhi', 'area': 'JetArea'},
      'cst': {'cst_id': 'CstMatchID', 'z': 'CstZ', 'dr': 'CstDr', 'ene': 'CstEnergy',
              'jt': 'CstJt', 'eta': 'CstEta', 'phi': 'CstPhi'},
      'extra': {'sum_ecal_ene': 'EvtSumECalEne', 'sum_hcal_ene': 'EvtSumHCalEne'},
    },
  }

  #---------------------------------------------------------------
  def extra_read_branches(self, stream):
    return []

  #---------------------------------------------------------------
  # Constituents are stored as one list per jet
  #---------------------------------------------------------------
  def group_csts(self, entry, cst_fields, n_jets):

    for bname in cst_fields.values():
      if len(entry[bname]) != n_jets:
        raise ValueError('branch {} has {} constituent lists for {} jets'.format(bname, len(entry[bname]), n_jets))

    csts = []
    for ijet in range(n_jets):
      id_bname = cst_fields['cst_id']
      n_csts = len(entry[id_bname][ijet])
      jet_csts = []
      for icst in range(n_csts):
        cst_kwargs = {attr: entry[bname][ijet][icst] for attr, bname in cst_fields.items()}
        jet_csts.append(jet_info.CstInfo(**cst_kwargs))
      csts.append(jet_csts)
    return csts

#---------------------------------------------------------------
# Select the event source for the input format
#---------------------------------------------------------------
def get_event_source(input_format='standard', **kwargs):

  sources = {'standard': TreeEventSource, 'legacy': LegacyTreeEventSource}
  if input_format not in sources:
    raise ValueError('unknown input_format {} (expected one of {})'.format(input_format, sorted(sources)))
  return sources[input_format](**kwargs)
