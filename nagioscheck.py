#!/usr/bin/env python
# encoding: utf-8
"""
nagioscheck.py

Shared plumbing for the Nagios checks in this package: status codes, threshold
evaluation, performance data, the per-call deadline and the status line.

Copyright (c) 2026 The check_aws_nagios authors. All rights reserved.
"""

import logging
import sys
import threading
from optparse import OptionParser

__version__ = '2.0.0'

log = logging.getLogger('nagioscheck')

# Exit statuses recognized by Nagios
OK = 0
WARNING = 1
CRITICAL = 2
UNKNOWN = 3

STATUS_NAMES = {
	OK: 'OK',
	WARNING: 'WARNING',
	CRITICAL: 'CRITICAL',
	UNKNOWN: 'UNKNOWN',
}

DEFAULT_TIMEOUT = 15
DEFAULT_CONFIG = '~/.aws/credentials'
DEFAULT_PROFILE = 'default'


class CheckError(Exception):
	"""Base class for anything that stops a check from producing a measurement"""


class ConfigurationError(CheckError):
	"""Missing or invalid arguments or credentials"""


class CollaboratorError(CheckError):
	"""An AWS call failed"""


class CollaboratorTimeout(CollaboratorError):
	pass


class CollaboratorMalformedResponse(CollaboratorError):
	pass


class CollaboratorAmbiguousResult(CheckError):
	"""Zero or several matches where exactly one was expected"""


class Threshold:
	"""A closed numeric range. None stands for an open bound."""

	def __init__(self, lower=None, upper=None):
		if lower is not None and upper is not None and lower > upper:
			raise ValueError('Lower bound %s exceeds upper bound %s' % (lower, upper))
		self.lower = lower
		self.upper = upper

	@classmethod
	def at_least(cls, value):
		"""Range that alerts once a "more is worse" value reaches value"""
		return cls(lower=value)

	def __contains__(self, value):
		if self.lower is not None and value < self.lower:
			return False
		if self.upper is not None and value > self.upper:
			return False
		return True

	def __repr__(self):
		return 'Threshold(%r, %r)' % (self.lower, self.upper)


class PerfData:
	"""One label=value[;warn;crit;min;max] record"""

	def __init__(self, label, value, unit='', warning=None, critical=None, minimum=None, maximum=None):
		self.label = label
		self.value = value
		self.unit = unit
		self.warning = warning
		self.critical = critical
		self.minimum = minimum
		self.maximum = maximum

	def __str__(self):
		label = self.label
		if ' ' in label or '=' in label or "'" in label:
			label = "'%s'" % label.replace("'", "''")
		if self.value is None:
			fields = ['U']
		else:
			fields = ['%s%s' % (self.value, self.unit)]
		for field in (self.warning, self.critical, self.minimum, self.maximum):
			fields.append('' if field is None else str(field))
		while fields[-1] == '':
			fields.pop()
		return '%s=%s' % (label, ';'.join(fields))


class Result:
	def __init__(self, status, message, perfdata=None):
		self.status = status
		self.message = message
		self.perfdata = perfdata or []

	def status_line(self, shortname):
		# '|' starts the perfdata and only the first line is read
		message = ' '.join(str(self.message).replace('|', '/').split())
		line = '%s %s - %s' % (shortname, STATUS_NAMES[self.status], message)
		if self.perfdata:
			line += ' | ' + ' '.join(str(p) for p in self.perfdata)
		return line

	def __repr__(self):
		return 'Result(%s, %r)' % (STATUS_NAMES[self.status], self.message)


def evaluate(value, warning, critical):
	"""Classify value against two Thresholds. Critical is tested first, so a
	value inside both ranges is always CRITICAL."""
	if value in critical:
		return CRITICAL
	if value in warning:
		return WARNING
	return OK


def call_with_deadline(timeout, func, *args, **kwargs):
	"""Run func in a worker thread and wait at most timeout seconds for it.

	A call that overruns is abandoned, not cancelled: the worker is a daemon
	thread and whatever it was doing on the remote side may still happen.
	Nothing is retried.
	"""
	name = getattr(func, '__name__', 'call')
	outcome = {}

	def target():
		try:
			outcome['value'] = func(*args, **kwargs)
		except Exception as e:
			outcome['error'] = e

	worker = threading.Thread(target=target, name='deadline-%s' % name, daemon=True)
	worker.start()
	worker.join(timeout)
	if worker.is_alive():
		log.debug('Abandoning %s after %s seconds', name, timeout)
		raise CollaboratorTimeout('%s did not answer within %s seconds' % (name, timeout))
	if 'error' in outcome:
		raise outcome['error']
	return outcome.get('value')


def run_check(measure, subject, label, warning, critical, hush=False, unit=''):
	"""Take one measurement with measure() and turn it into a Result"""
	try:
		value = measure()
		if isinstance(value, bool) or not isinstance(value, int) or value < 0:
			raise CollaboratorMalformedResponse('%s could not be read as a count: %r' % (subject, value))
	except (ConfigurationError, CollaboratorAmbiguousResult) as e:
		return Result(UNKNOWN, str(e))
	except CollaboratorError as e:
		if not hush:
			return Result(UNKNOWN, str(e))
		log.info('Suppressing failure because of --hush: %s', e)
		perfdata = PerfData(label, None, unit, warning, critical, 0)
		return Result(OK, '%s unavailable, ignored (%s)' % (subject, e), [perfdata])

	status = evaluate(value, Threshold.at_least(warning), Threshold.at_least(critical))
	log.info('%s is %s (warning %s, critical %s): %s', subject, value, warning, critical, STATUS_NAMES[status])
	perfdata = PerfData(label, value, unit, warning, critical, 0)
	return Result(status, '%s is %s' % (subject, value), [perfdata])


def report(shortname, result):
	"""Print the status line and exit with the matching code"""
	print(result.status_line(shortname))
	sys.stdout.flush()
	sys.exit(result.status)


class CheckOptionParser(OptionParser):
	"""OptionParser whose errors end in UNKNOWN rather than optparse's exit 2,
	which the poller would read as CRITICAL"""

	def error(self, msg):
		raise ConfigurationError(msg)


def build_parser(usage, warning, critical, hush=False):
	"""Options every check understands"""
	parser = CheckOptionParser(usage=usage, version='%prog ' + __version__)
	parser.add_option("-w", "--warning", dest="warn", type="int", metavar="N", default=warning,
		help="warning threshold (default: %default)")
	parser.add_option("-c", "--critical", dest="crit", type="int", metavar="N", default=critical,
		help="critical threshold (default: %default)")
	parser.add_option("-t", "--timeout", dest="timeout", type="float", metavar="SECONDS", default=DEFAULT_TIMEOUT,
		help="deadline for each AWS API call (default: %default)")
	parser.add_option("-C", "--config", dest="configfile", metavar="FILE", default=DEFAULT_CONFIG,
		help="credentials/configuration file (default: %default)")
	parser.add_option("-p", "--profile", dest="profile", metavar="NAME", default=DEFAULT_PROFILE,
		help="credentials profile (default: %default)")
	parser.add_option("-v", "--verbose", dest="verbose", action="count", default=0,
		help="more diagnostics on stderr, repeat for more")
	if hush:
		parser.add_option("-H", "--hush", dest="hush", action="store_true", default=False,
			help="report OK instead of UNKNOWN when AWS fails or times out")
	return parser


def setup_logging(verbose):
	level = max(logging.DEBUG, logging.WARNING - 10 * verbose)
	logging.basicConfig(stream=sys.stderr, level=level,
		format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
	logging.getLogger().setLevel(level)
	# Disable noisy libraries
	if verbose < 3:
		for name in ('boto3', 'botocore', 'urllib3'):
			logging.getLogger(name).setLevel(logging.WARNING)


def validate_thresholds(warn, crit):
	"""Perform sanity checks on threshold values"""
	for name, value in ('-w (--warning)', warn), ('-c (--critical)', crit):
		if value < 0:
			raise ConfigurationError('Argument %s expects a non-negative number, got %s.' % (name, value))
	if warn > crit:
		log.warning('Warning threshold %s exceeds critical threshold %s; critical takes precedence', warn, crit)


def parse_options(parser, argv=None):
	options, args = parser.parse_args(argv)
	if args:
		raise ConfigurationError('Unexpected arguments: %s' % ' '.join(args))
	setup_logging(options.verbose)
	validate_thresholds(options.warn, options.crit)
	if options.timeout <= 0:
		raise ConfigurationError('Timeout must be positive, got %s.' % options.timeout)
	log.debug('Options: %s', options)
	return options
