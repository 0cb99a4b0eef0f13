import threading

import pytest

import nagioscheck
from nagioscheck import (CRITICAL, OK, UNKNOWN, WARNING, CollaboratorAmbiguousResult,
	CollaboratorError, CollaboratorMalformedResponse, CollaboratorTimeout, ConfigurationError,
	PerfData, Result, Threshold, build_parser, call_with_deadline, evaluate, parse_options,
	report, run_check)


def classify(value, warn, crit):
	return evaluate(value, Threshold.at_least(warn), Threshold.at_least(crit))


def test_threshold_open_bounds():
	assert 5 in Threshold()
	assert -10 in Threshold(upper=0)
	assert 1 not in Threshold(upper=0)
	assert 10 in Threshold.at_least(10)
	assert 9 not in Threshold.at_least(10)
	assert 3 in Threshold(0, 3)
	assert 4 not in Threshold(0, 3)


def test_threshold_rejects_inverted_range():
	with pytest.raises(ValueError):
		Threshold(5, 1)


@pytest.mark.parametrize('value', [0, 1, 4])
def test_below_warning_is_ok(value):
	assert classify(value, 5, 10) == OK


@pytest.mark.parametrize('value', [5, 7, 9])
def test_between_thresholds_is_warning(value):
	assert classify(value, 5, 10) == WARNING


@pytest.mark.parametrize('value', [10, 11, 10000])
def test_at_or_above_critical_is_critical(value):
	assert classify(value, 5, 10) == CRITICAL


@pytest.mark.parametrize('value', [3, 5, 8])
def test_critical_wins_when_ranges_overlap(value):
	# critical <= warning: both ranges contain the value
	assert classify(value, 8, 3) == CRITICAL
	assert evaluate(value, Threshold(0, 100), Threshold(0, 100)) == CRITICAL


def test_perfdata_format():
	assert str(PerfData('messages', 7, warning=5, critical=10, minimum=0)) == 'messages=7;5;10;0'
	assert str(PerfData('messages', 7)) == 'messages=7'
	assert str(PerfData('size', 3, 'B', maximum=9)) == 'size=3B;;;;9'
	assert str(PerfData('queue depth', 1)) == "'queue depth'=1"
	assert str(PerfData('messages', None, warning=5)) == 'messages=U;5'


def test_status_line_keeps_to_one_line():
	result = Result(WARNING, 'a|b\nc', [PerfData('x', 1)])
	assert result.status_line('SQS') == 'SQS WARNING - a/b c | x=1'


@pytest.mark.parametrize('value,status', [(7, WARNING), (10, CRITICAL), (0, OK)])
def test_run_check_scenarios(value, status):
	result = run_check(lambda: value, 'Queue "orders" length', 'messages', 5, 10)
	assert result.status == status
	assert result.message == 'Queue "orders" length is %d' % value
	assert str(result.perfdata[0]) == 'messages=%d;5;10;0' % value


def raiser(error):
	def measure():
		raise error
	return measure


def test_run_check_timeout_unknown_unless_hushed():
	measure = raiser(CollaboratorTimeout('list_queues did not answer within 15 seconds'))
	assert run_check(measure, 'q', 'messages', 5, 10).status == UNKNOWN
	hushed = run_check(measure, 'q', 'messages', 5, 10, hush=True)
	assert hushed.status == OK
	assert 'did not answer' in hushed.message
	assert str(hushed.perfdata[0]) == 'messages=U;5;10;0'


@pytest.mark.parametrize('error', [CollaboratorMalformedResponse('bad'), CollaboratorError('boom')])
def test_run_check_collaborator_failures_hushable(error):
	assert run_check(raiser(error), 'q', 'm', 5, 10).status == UNKNOWN
	assert run_check(raiser(error), 'q', 'm', 5, 10, hush=True).status == OK


@pytest.mark.parametrize('error', [ConfigurationError('no keys'), CollaboratorAmbiguousResult('no queue')])
def test_run_check_never_hushes_configuration_or_ambiguity(error):
	result = run_check(raiser(error), 'q', 'm', 5, 10, hush=True)
	assert result.status == UNKNOWN
	assert result.message == str(error)


@pytest.mark.parametrize('value', [None, '7', -1, True, 2.5])
def test_run_check_rejects_non_counts(value):
	assert run_check(lambda: value, 'q', 'm', 5, 10).status == UNKNOWN


def test_call_with_deadline_returns_value():
	assert call_with_deadline(1, lambda a, b=0: a + b, 1, b=2) == 3


def test_call_with_deadline_propagates_errors():
	with pytest.raises(KeyError):
		call_with_deadline(1, raiser(KeyError('x')))


def test_call_with_deadline_abandons_slow_call():
	release = threading.Event()

	def list_queues():
		release.wait(5)

	try:
		with pytest.raises(CollaboratorTimeout) as excinfo:
			call_with_deadline(0.05, list_queues)
		assert 'list_queues' in str(excinfo.value)
	finally:
		release.set()


@pytest.mark.parametrize('status', [OK, WARNING, CRITICAL, UNKNOWN])
def test_report_exit_code(status, capsys):
	with pytest.raises(SystemExit) as excinfo:
		report('SQS', Result(status, 'Queue "orders" length is 7', [PerfData('messages', 7, warning=5, critical=10)]))
	assert excinfo.value.code == status
	out = capsys.readouterr().out
	assert out == 'SQS %s - Queue "orders" length is 7 | messages=7;5;10\n' % nagioscheck.STATUS_NAMES[status]


def test_parse_options_defaults():
	options = parse_options(build_parser('%prog', 5, 10, hush=True), [])
	assert (options.warn, options.crit, options.timeout) == (5, 10, 15)
	assert options.profile == 'default'
	assert options.hush is False
	assert options.verbose == 0


def test_parse_options_repeatable_verbose():
	options = parse_options(build_parser('%prog', 5, 10), ['-vv', '-w', '1', '-c', '2', '-t', '3'])
	assert options.verbose == 2
	assert (options.warn, options.crit, options.timeout) == (1, 2, 3)
	assert not hasattr(options, 'hush')


@pytest.mark.parametrize('argv', [
	['-w', 'five'],
	['-c', '-1'],
	['-t', '0'],
	['stray'],
	['--no-such-option'],
])
def test_parse_options_errors_are_configuration_errors(argv):
	with pytest.raises(ConfigurationError):
		parse_options(build_parser('%prog', 5, 10), argv)


def test_parse_options_accepts_warning_above_critical():
	options = parse_options(build_parser('%prog', 5, 10), ['-w', '20', '-c', '10'])
	assert (options.warn, options.crit) == (20, 10)
