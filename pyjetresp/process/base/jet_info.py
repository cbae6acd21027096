#!/usr/bin/env python3

"""
    Classes to store event, jet and constituent info, used for jet matching.

    All objects are built fresh by the event source for each event and
    are not modified by the matcher.
"""

# Base class
from pyjetresp.process.base import common_base

# Reco-side values written for a truth jet (or constituent) without a match
PLACEHOLDER_ID = -1
PLACEHOLDER_VALUE = -999.

################################################################
class CstInfo(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, cst_id=PLACEHOLDER_ID, z=0., dr=0., ene=0., jt=0., eta=0., phi=0., **kwargs):
    super(CstInfo, self).__init__(**kwargs)
    self.cst_id = cst_id
    self.z = z
    self.dr = dr
    self.ene = ene
    self.jt = jt
    self.eta = eta
    self.phi = phi

  #---------------------------------------------------------------
  def __repr__(self):
    return 'CstInfo(id={}, z={:.3f}, eta={:.3f}, phi={:.3f})'.format(self.cst_id, self.z, self.eta, self.phi)

################################################################
class JetInfo(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, jet_id=PLACEHOLDER_ID, ene=0., pt=0., eta=0., phi=0., area=0., num_cst=None, csts=None, **kwargs):
    super(JetInfo, self).__init__(**kwargs)
    self.jet_id = jet_id
    self.ene = ene
    self.pt = pt
    self.eta = eta
    self.phi = phi
    self.area = area
    self.csts = list(csts) if csts is not None else []
    self.num_cst = num_cst if num_cst is not None else len(self.csts)

  #---------------------------------------------------------------
  # Ordered list of constituent IDs
  #---------------------------------------------------------------
  def cst_ids(self):
    return [cst.cst_id for cst in self.csts]

  #---------------------------------------------------------------
  def __repr__(self):
    return 'JetInfo(id={}, pt={:.3f}, eta={:.3f}, phi={:.3f}, ncst={})'.format(self.jet_id, self.pt, self.eta, self.phi, self.num_cst)

################################################################
class EventInfo(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #   num_trks is the charged-particle count on the truth side
  #   and the track count on the reco side.
  #   extras holds event info that has no truth/reco counterpart.
  #---------------------------------------------------------------
  def __init__(self, num_jets=None, num_trks=0, vtx_x=0., vtx_y=0., vtx_z=0., jets=None, extras=None, **kwargs):
    super(EventInfo, self).__init__(**kwargs)
    self.jets = list(jets) if jets is not None else []
    self.num_jets = num_jets if num_jets is not None else len(self.jets)
    self.num_trks = num_trks
    self.vtx_x = vtx_x
    self.vtx_y = vtx_y
    self.vtx_z = vtx_z
    self.extras = dict(extras) if extras is not None else {}

################################################################
class MatchCandidate(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #   cst_pairs: list of (truth CstInfo, reco CstInfo) with equal IDs
  #---------------------------------------------------------------
  def __init__(self, jet=None, dr=0., qt=0., cst_pairs=None, frac=0., **kwargs):
    super(MatchCandidate, self).__init__(**kwargs)
    self.jet = jet
    self.dr = dr
    self.qt = qt
    self.cst_pairs = cst_pairs if cst_pairs is not None else []
    self.frac = frac

################################################################
class JetMatch(common_base.CommonBase):

  #---------------------------------------------------------------
  # Constructor
  #---------------------------------------------------------------
  def __init__(self, truth=None, candidate=None, **kwargs):
    super(JetMatch, self).__init__(**kwargs)
    self.truth = truth
    self.candidate = candidate

  #---------------------------------------------------------------
  @property
  def is_matched(self):
    return self.candidate is not None

  #---------------------------------------------------------------
  # Reco jet of the match, or a placeholder jet
  #---------------------------------------------------------------
  def reco(self):
    if self.candidate is None:
      return placeholder_jet()
    return self.candidate.jet

#---------------------------------------------------------------
def placeholder_cst():
  return CstInfo(cst_id=PLACEHOLDER_ID, z=PLACEHOLDER_VALUE, dr=PLACEHOLDER_VALUE, ene=PLACEHOLDER_VALUE,
                 jt=PLACEHOLDER_VALUE, eta=PLACEHOLDER_VALUE, phi=PLACEHOLDER_VALUE)

#---------------------------------------------------------------
def placeholder_jet():
  return JetInfo(jet_id=PLACEHOLDER_ID, ene=PLACEHOLDER_VALUE, pt=PLACEHOLDER_VALUE, eta=PLACEHOLDER_VALUE,
                 phi=PLACEHOLDER_VALUE, area=PLACEHOLDER_VALUE, num_cst=0)
