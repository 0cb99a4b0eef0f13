#!/usr/bin/env python
# encoding: utf-8
"""
check_aws_limits.py

Nagios plugin counting the AWS service limits that Trusted Advisor reports as
close to or over their quota.  Needs a support plan that exposes the Trusted
Advisor API.

Copyright (c) 2026 The check_aws_nagios authors. All rights reserved.
"""

import logging

from awsclient import aws_call, connect, load_credentials
from nagioscheck import (DEFAULT_CONFIG, UNKNOWN, CollaboratorAmbiguousResult,
	CollaboratorMalformedResponse, ConfigurationError, Result, build_parser, parse_options,
	report, run_check)

USAGE = """%prog [-r <region> [-r <region> ...]] [-w <warning threshold>] [-c <critical threshold>] [-t <timeout>] [-C <config file>] [-p <profile>] [-v]"""
SHORTNAME = 'LIMITS'
WARNING_THRESHOLD = 5
CRITICAL_THRESHOLD = 10

CHECK_NAME = 'Service Limits'
# The Support API only answers in us-east-1
SUPPORT_REGION = 'us-east-1'

log = logging.getLogger('check_aws_limits')


def find_check_id(support, timeout):
	response = aws_call(timeout, support.describe_trusted_advisor_checks, language='en')
	checks = response.get('checks')
	if not isinstance(checks, list):
		raise CollaboratorMalformedResponse('DescribeTrustedAdvisorChecks returned no list of checks')
	if not all(isinstance(check, dict) for check in checks):
		raise CollaboratorMalformedResponse('DescribeTrustedAdvisorChecks returned a check that is not a mapping')
	ids = [check.get('id') for check in checks if check.get('name') == CHECK_NAME]
	if len(ids) != 1:
		raise CollaboratorAmbiguousResult('Expected one Trusted Advisor check named "%s", found %d.' % (CHECK_NAME, len(ids)))
	if not ids[0]:
		raise CollaboratorMalformedResponse('Trusted Advisor check "%s" has no id' % CHECK_NAME)
	return ids[0]


def flagged_limits(flagged_resources, regions=None):
	"""Set of (region, component) for every limit not in the ok state.

	Metadata columns are Region, Service, Limit Name, Limit Amount, Current
	Usage, Status.
	"""
	tally = set()
	for resource in flagged_resources:
		if not isinstance(resource, dict):
			raise CollaboratorMalformedResponse('Flagged resource %r is not a mapping' % (resource,))
		if resource.get('status') == 'ok':
			continue
		metadata = resource.get('metadata')
		if (not isinstance(metadata, list) or len(metadata) < 3
				or not all(column is None or isinstance(column, str) for column in metadata[:3])):
			raise CollaboratorMalformedResponse('Flagged resource %s has unexpected metadata %r' % (resource.get('resourceId'), metadata))
		region = metadata[0] or resource.get('region') or '-'
		if not isinstance(region, str):
			raise CollaboratorMalformedResponse('Flagged resource %s has region %r' % (resource.get('resourceId'), region))
		if regions and region not in regions:
			continue
		tally.add((region, '%s %s' % (metadata[1], metadata[2])))
	return tally


def get_flagged_count(support, regions, timeout):
	"""Number of distinct service limits flagged in the given regions (all if none)"""
	check_id = find_check_id(support, timeout)
	response = aws_call(timeout, support.describe_trusted_advisor_check_result, checkId=check_id, language='en')
	result = response.get('result') or {}
	resources = result.get('flaggedResources') if isinstance(result, dict) else None
	if not isinstance(resources, list):
		raise CollaboratorMalformedResponse('Trusted Advisor result for %s has no flaggedResources' % check_id)
	tally = flagged_limits(resources, regions)
	for region, component in sorted(tally):
		log.info('Flagged: %s %s', region, component)
	return len(tally)


def main(argv=None):
	parser = build_parser(USAGE, WARNING_THRESHOLD, CRITICAL_THRESHOLD)
	parser.add_option("-r", "--region", dest="regions", action="append", metavar="NAME",
		help="only count limits in this region; repeat for more (default: all)")
	try:
		options = parse_options(parser, argv)
		credentials = load_credentials(options.configfile, options.profile,
			required=options.configfile != DEFAULT_CONFIG)
		support = connect('support', credentials, SUPPORT_REGION, options.timeout)
	except ConfigurationError as e:
		report(SHORTNAME, Result(UNKNOWN, str(e)))

	subject = 'Flagged service limits'
	if options.regions:
		subject += ' in %s' % ', '.join(options.regions)
	result = run_check(lambda: get_flagged_count(support, options.regions, options.timeout),
		subject, 'flagged', options.warn, options.crit)
	report(SHORTNAME, result)


if __name__ == '__main__':
	main()
