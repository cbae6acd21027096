# coding: utf-8

"""
Builders for small truth/reco events used across the tests.
"""

__all__ = ["make_cst", "make_csts", "make_jet", "make_event", "write_standard_tree"]

from pyjetresp.process.base.jet_info import CstInfo, JetInfo, EventInfo


def make_cst(cst_id, z=0.1, eta=0.1, phi=0.2, ene=1.0):
    return CstInfo(cst_id=cst_id, z=z, dr=0.05, ene=ene, jt=0.3, eta=eta, phi=phi)


def make_csts(ids, **kwargs):
    return [make_cst(cst_id, **kwargs) for cst_id in ids]


def make_jet(jet_id, pt, eta, phi, cst_ids=(), ene=None, area=0.2):
    csts = make_csts(cst_ids, eta=eta, phi=phi)
    return JetInfo(jet_id=jet_id, ene=pt if ene is None else ene, pt=pt, eta=eta, phi=phi,
                   area=area, csts=csts)


def make_event(jets, num_trks=10, vtx=(0.0, 0.0, 0.0)):
    return EventInfo(num_trks=num_trks, vtx_x=vtx[0], vtx_y=vtx[1], vtx_z=vtx[2], jets=jets)


def write_standard_tree(file_name, tree_name, events):
    """
    Write *events* (list of EventInfo) as a tree in the standard (snake_case) layout.
    """
    from pyjetresp.mputils.treewriter import RTreeWriter

    writer = RTreeWriter(file_name=file_name, tree_name=tree_name,
                         dtypes={"jet_id": "int64", "jet_num_cst": "int64", "cst_id": "int64", "cst_jet_index": "int64",
                                 "num_jets": "int64", "num_trks": "int64"})
    for event in events:
        csts = [(ijet, cst) for ijet, jet in enumerate(event.jets) for cst in jet.csts]
        writer.fill_branches(
            num_jets=event.num_jets,
            num_trks=event.num_trks,
            vtx_x=float(event.vtx_x),
            vtx_y=float(event.vtx_y),
            vtx_z=float(event.vtx_z),
            jet_id=[jet.jet_id for jet in event.jets],
            jet_num_cst=[jet.num_cst for jet in event.jets],
            jet_ene=[float(jet.ene) for jet in event.jets],
            jet_pt=[float(jet.pt) for jet in event.jets],
            jet_eta=[float(jet.eta) for jet in event.jets],
            jet_phi=[float(jet.phi) for jet in event.jets],
            jet_area=[float(jet.area) for jet in event.jets],
            cst_jet_index=[ijet for ijet, cst in csts],
            cst_id=[cst.cst_id for ijet, cst in csts],
            cst_z=[float(cst.z) for ijet, cst in csts],
            cst_dr=[float(cst.dr) for ijet, cst in csts],
            cst_ene=[float(cst.ene) for ijet, cst in csts],
            cst_jt=[float(cst.jt) for ijet, cst in csts],
            cst_eta=[float(cst.eta) for ijet, cst in csts],
            cst_phi=[float(cst.phi) for ijet, cst in csts],
        )
        writer.fill_tree()
    writer.write_and_close()
