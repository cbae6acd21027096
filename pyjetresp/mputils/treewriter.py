import numpy as np
import awkward as ak
import uproot
from pyjetresp.mputils.mputils import MPBase, pinfo, pwarning


class RTreeWriter(MPBase):
	_scalar_types = (bool, int, float, np.bool_, np.integer, np.floating)
	def __init__(self, **kwargs):
		self.configure_from_args(	tree_name=None,
									name="RTreeWriter",
									file_name="RTreeWriter.root",
									fout=None,
									dtypes={},
									nested=[],
									flush_every=1000)
		super(RTreeWriter, self).__init__(**kwargs)
		self.dtypes = dict(self.dtypes)
		self._declared_dtypes = set(self.dtypes)
		self.nested = set(self.nested)
		self._warnings = []
		if self.fout is None:
			pinfo('new file {}'.format(self.file_name))
			self.fout = uproot.recreate(self.file_name)
		if self.tree_name is None:
			self.tree_name = 't'+self.name
		# per-branch kind: 'scalar', 'list' or 'nested' (list of lists)
		self.branch_kinds = {}
		self.branch_containers = {}
		# list branches that have only seen empty lists so far
		self._undecided = set()
		self._rows = []
		self._tree_created = False
		self.n_entries = 0

	def add_warning(self, s):
		if s not in self._warnings:
			self._warnings.append(s)

	def _kind(self, bname, value):
		if isinstance(value, self._scalar_types):
			return 'scalar'
		if type(value) in [tuple, list]:
			if any(type(x) in [tuple, list] for x in value):
				return 'nested'
			# declared nested branches may start with an empty list
			if bname in self.nested and len(value) == 0:
				return 'nested'
			return 'list'
		return None

	def _dtype(self, bname, value, kind):
		if bname in self._declared_dtypes:
			return np.dtype(self.dtypes[bname])
		if kind == 'nested':
			value = [x for sub in value for x in sub]
		sample = np.asarray(value)
		if sample.size == 0:
			return np.dtype(np.float64)
		return sample.dtype

	def _decide(self, bname, value, kind):
		self.branch_kinds[bname] = kind
		self.dtypes[bname] = self._dtype(bname, value, kind)
		if kind == 'list' and len(value) == 0:
			self._undecided.add(bname)
		else:
			self._undecided.discard(bname)

	def _fill_branch(self, bname, value, kind):
		known = self.branch_kinds.get(bname)
		if known is None:
			self._decide(bname, value, kind)
		elif bname in self._undecided and kind == 'list':
			# rows buffered so far hold empty lists only
			if len(value) > 0:
				self._decide(bname, value, kind)
		elif bname in self._undecided and kind == 'nested':
			self._decide(bname, value, kind)
		elif known != kind:
			self.add_warning('branch {} was created as {} - {} value ignored'.format(bname, known, kind))
			return
		self.branch_containers[bname] = value

	def fill_branches(self, **kwargs):
		for a in kwargs:
			self.fill_branch(bname=a, value=kwargs[a])

	def fill_branch(self, bname, value):
		if dict == type(value):
			for k, x in value.items():
				self.fill_branch('{}_{}'.format(bname, k), x)
			return
		kind = self._kind(bname, value)
		if kind is not None:
			self._fill_branch(bname, value, kind)
			return
		try:
			_val = float(value)
			self._fill_branch(bname, _val, 'scalar')
			self.add_warning('converted {} to float for branch {}'.format(type(value), bname))
			return
		except (TypeError, ValueError):
			pass
		self.add_warning('do not know how to fill tree {} branch {} for type {} - ignored'.format(self.tree_name, bname, type(value)))

	def clear(self):
		self.branch_containers = {}

	def fill_tree(self):
		missing = [b for b in self.branch_kinds if b not in self.branch_containers]
		if len(missing) > 0:
			raise ValueError('RTreeWriter {} tree {}: branches {} not filled for entry {}'.format(self.name, self.tree_name, missing, self.n_entries))
		self._rows.append(self.branch_containers)
		self.n_entries += 1
		self.clear()
		if len(self._rows) >= self.flush_every:
			self.flush()

	def _column(self, bname):
		kind = self.branch_kinds[bname]
		dtype = self.dtypes[bname]
		values = [row[bname] for row in self._rows]
		if kind == 'scalar':
			return {bname: np.asarray(values, dtype=dtype)}
		if kind == 'list':
			counts = np.asarray([len(v) for v in values], dtype=np.int64)
			flat = np.asarray([x for v in values for x in v], dtype=dtype)
			return {bname: ak.unflatten(flat, counts)}
		# nested lists are stored flat with the index of the sub-list each element belongs to
		counts = np.asarray([sum(len(sub) for sub in v) for v in values], dtype=np.int64)
		flat = np.asarray([x for v in values for sub in v for x in sub], dtype=dtype)
		index = np.asarray([i for v in values for i, sub in enumerate(v) for x in sub], dtype=np.int32)
		return {bname: ak.unflatten(flat, counts),
				'{}_index'.format(bname): ak.unflatten(index, counts)}

	def flush(self):
		if len(self._rows) == 0:
			return
		data = {}
		for bname in self.branch_kinds:
			data.update(self._column(bname))
		if self._tree_created:
			self.fout[self.tree_name].extend(data)
		else:
			self.fout[self.tree_name] = data
			self._tree_created = True
			# branch kinds and dtypes are fixed once the tree exists
			self._undecided.clear()
		self._rows = []

	def write_histogram(self, hname, counts, edges):
		self.fout[hname] = (np.asarray(counts, dtype=np.float64), np.asarray(edges, dtype=np.float64))

	def write_and_close(self):
		self.flush()
		if not self._tree_created:
			pwarning('RTreeWriter {}: no entries filled - tree {} not written'.format(self.name, self.tree_name))
		pinfo('writing {} ({} entries)'.format(self.file_name, self.n_entries))
		for w in self._warnings:
			pwarning(self.tree_name, ':', w)
		self.fout.close()
