#!/usr/bin/env python
# encoding: utf-8
"""
check_app_versions.py

Nagios plugin for counting the application versions an Elastic Beanstalk
application keeps around.  Old versions pile up until the account quota is
hit and deployments start failing.

Copyright (c) 2026 The check_aws_nagios authors. All rights reserved.
"""

import logging

from awsclient import aws_call, connect, load_credentials
from nagioscheck import (DEFAULT_CONFIG, UNKNOWN, CollaboratorAmbiguousResult,
	CollaboratorMalformedResponse, ConfigurationError, Result, build_parser, parse_options,
	report, run_check)

USAGE = """%prog -a <application> [-w <warning threshold>] [-c <critical threshold>] [-t <timeout>] [-r <region>] [-C <config file>] [-p <profile>] [-v]"""
SHORTNAME = 'VERSIONS'
WARNING_THRESHOLD = 5
CRITICAL_THRESHOLD = 15

log = logging.getLogger('check_app_versions')


def get_version_count(beanstalk, application, timeout):
	response = aws_call(timeout, beanstalk.describe_applications, ApplicationNames=[application])
	applications = response.get('Applications')
	if not isinstance(applications, list):
		raise CollaboratorMalformedResponse('DescribeApplications returned no list of applications')
	if not applications:
		raise CollaboratorAmbiguousResult('Application "%s" does not exist.' % application)
	if len(applications) > 1:
		raise CollaboratorAmbiguousResult('Application name "%s" matches %d applications.' % (application, len(applications)))

	count = 0
	params = {'ApplicationName': application}
	while True:
		response = aws_call(timeout, beanstalk.describe_application_versions, **params)
		versions = response.get('ApplicationVersions')
		if not isinstance(versions, list):
			raise CollaboratorMalformedResponse('DescribeApplicationVersions returned no list of versions')
		count += len(versions)
		if not response.get('NextToken'):
			break
		params['NextToken'] = response['NextToken']
	log.info('Application %s has %d versions', application, count)
	return count


def main(argv=None):
	parser = build_parser(USAGE, WARNING_THRESHOLD, CRITICAL_THRESHOLD)
	parser.add_option("-a", "--application", dest="application", metavar="NAME", help="Elastic Beanstalk application name")
	parser.add_option("-r", "--region", dest="region", metavar="NAME", help="AWS region of the application")
	try:
		options = parse_options(parser, argv)
		if not options.application:
			raise ConfigurationError('No application specified.')
		credentials = load_credentials(options.configfile, options.profile,
			required=options.configfile != DEFAULT_CONFIG)
		beanstalk = connect('elasticbeanstalk', credentials, options.region, options.timeout)
	except ConfigurationError as e:
		report(SHORTNAME, Result(UNKNOWN, str(e)))

	result = run_check(lambda: get_version_count(beanstalk, options.application, options.timeout),
		'Version count of "%s"' % options.application, 'versions', options.warn, options.crit)
	report(SHORTNAME, result)


if __name__ == '__main__':
	main()
