import sys


class ColorS(object):
	def str(*args):
		return ' '.join([str(s) for s in args])
	def red(*s):
		return '\033[91m{}\033[00m'.format(ColorS.str(*s))
	def green(*s):
		return '\033[92m{}\033[00m'.format(ColorS.str(*s))
	def yellow(*s):
		return '\033[93m{}\033[00m'.format(ColorS.str(*s))
	def purple(*s):
		return '\033[95m{}\033[00m'.format(ColorS.str(*s))


# colors only when writing to a terminal (not for log files or batch jobs)
def _colorize(color, stream, *args):
	isatty = getattr(stream, 'isatty', None)
	if callable(isatty) and isatty():
		return color(*args)
	return ColorS.str(*args)

def pwarning(*args, file=None):
	file = file if file is not None else sys.stderr
	print(_colorize(ColorS.yellow, file, '[w]', *args), file=file)

def pdebug(*args, file=None):
	file = file if file is not None else sys.stderr
	print(_colorize(ColorS.purple, file, '[d]', *args), file=file)

def perror(*args, file=None):
	file = file if file is not None else sys.stderr
	print(_colorize(ColorS.red, file, '[e]', *args), file=file)

def pinfo(*args, file=None):
	file = file if file is not None else sys.stdout
	print(_colorize(ColorS.green, file, '[i]', *args), file=file)


class MPBase(object):
	def __init__(self, **kwargs):
		for key, value in kwargs.items():
			self.__setattr__(key, value)
		if getattr(self, 'name', None) is None:
			self.name = self.__class__.__name__

	def configure_from_args(self, **kwargs):
		for key, value in kwargs.items():
			self.__setattr__(key, value)

	def __str__(self):
		s = ['{} = {}'.format(k, v) for k, v in self.__dict__.items() if not k.startswith('_')]
		return '[i] {} ({}) with\n -  {}'.format(self.name, type(self).__name__, '\n -  '.join(s))
