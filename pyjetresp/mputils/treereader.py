import uproot
import awkward as ak
from pyjetresp.mputils.mputils import MPBase, pinfo, pwarning


class RTreeReader(MPBase):
	def __init__(self, **kwargs):
		self.configure_from_args(	tree=None,
									tree_name=None,
									name="RTreeReader",
									file_name=None,
									fin=None,
									quiet=True,
									chunk_size=1000,
									branches=[],
									optional_branches=[])
		super(RTreeReader, self).__init__(**kwargs)
		if self.tree is None:
			if self.fin is None:
				if not self.quiet:
					pinfo('opening file {}'.format(self.file_name))
				self.fin = uproot.open(self.file_name)
			if self.tree_name is None:
				self.tree_name = 't'+self.name
			self.tree = self.fin[self.tree_name]
		self.available = set(self.tree.keys())
		missing = [bname for bname in self.branches if bname not in self.available]
		if len(missing) > 0:
			raise KeyError('RTreeReader {} tree {}: branches {} not found'.format(self.name, self.tree_name, missing))
		self.read_branches = list(self.branches)
		for bname in self.optional_branches:
			if bname in self.available:
				self.read_branches.append(bname)
			elif not self.quiet:
				pwarning('RTreeReader {} tree {}: optional branch [{}] not found'.format(self.name, self.tree_name, bname))
		self._chunk = None
		self._chunk_start = 0
		self._chunk_stop = 0

	def __len__(self):
		return self.tree.num_entries

	def has_branch(self, bname):
		return bname in self.read_branches

	def _load_chunk(self, entry):
		self._chunk_start = entry
		self._chunk_stop = min(entry + self.chunk_size, len(self))
		self._chunk = self.tree.arrays(self.read_branches,
									entry_start=self._chunk_start,
									entry_stop=self._chunk_stop,
									library='ak')

	# returns a dict {branch: python value} for a single entry
	def get_entry(self, entry):
		if entry < 0 or entry >= len(self):
			raise IndexError('RTreeReader {} tree {}: entry {} out of range [0, {})'.format(self.name, self.tree_name, entry, len(self)))
		if self._chunk is None or not (self._chunk_start <= entry < self._chunk_stop):
			self._load_chunk(entry)
		return ak.to_list(self._chunk[entry - self._chunk_start])

	def next_event(self):
		for i in range(len(self)):
			yield self.get_entry(i)

	def close(self):
		self._chunk = None
		if self.fin is not None:
			self.fin.close()
