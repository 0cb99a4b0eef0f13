#!/usr/bin/env python
# encoding: utf-8
"""
check_sqs_queue.py

Nagios plugin for checking the length of an Amazon SQS queue.  On CRITICAL it
can also email recipients directly.

Requirements:
-boto3, the AWS SDK for Python.
-AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY, read in from a profile of the
config file (~/.aws/credentials by default), from same-named environment
variables, or from boto3's own credential chain.

Copyright (c) 2009 ShareThis. All rights reserved.
"""

import logging
import smtplib

from awsclient import aws_call, connect, load_credentials, read_config
from nagioscheck import (CRITICAL, DEFAULT_CONFIG, UNKNOWN, CollaboratorAmbiguousResult,
	CollaboratorMalformedResponse, ConfigurationError, Result, build_parser, parse_options,
	report, run_check)

USAGE = """%prog -q <queue name> [-w <warning threshold>] [-c <critical threshold>] [-t <timeout>] [-H] [-r <region>] [-n <recipient(s)>] [-C <config file>] [-p <profile>] [-v]"""
SHORTNAME = 'SQS'
WARNING_THRESHOLD = 5
CRITICAL_THRESHOLD = 10

# More prefix matches than this and we refuse to pick one
MAX_CANDIDATES = 5
COUNT_ATTRIBUTE = 'ApproximateNumberOfMessages'

log = logging.getLogger('check_sqs_queue')


def get_queue_count(sqs, queue, timeout):
	"""Count the messages waiting in the queue whose ARN ends in the queue name"""
	response = aws_call(timeout, sqs.list_queues, QueueNamePrefix=queue)
	urls = response.get('QueueUrls', [])
	if not isinstance(urls, list):
		raise CollaboratorMalformedResponse('ListQueues returned %r instead of a list of URLs' % (urls,))
	if not urls:
		raise CollaboratorAmbiguousResult('Queue "%s" does not exist.' % queue)
	if len(urls) > MAX_CANDIDATES:
		raise CollaboratorAmbiguousResult('%d queues start with "%s", expected at most %d.' % (len(urls), queue, MAX_CANDIDATES))

	# The prefix also matches e.g. "<queue>-deadletter"; the ARN tells them apart
	matches = []
	for url in urls:
		response = aws_call(timeout, sqs.get_queue_attributes,
			QueueUrl=url, AttributeNames=['QueueArn', COUNT_ATTRIBUTE])
		attributes = response.get('Attributes') or {}
		if not isinstance(attributes, dict):
			raise CollaboratorMalformedResponse('Attributes for %s are %r, not a mapping' % (url, attributes))
		arn = attributes.get('QueueArn')
		if not arn or not isinstance(arn, str):
			raise CollaboratorMalformedResponse('No QueueArn returned for %s' % url)
		log.debug('Candidate %s has ARN %s', url, arn)
		if arn.endswith(':' + queue):
			matches.append((url, attributes))

	if not matches:
		raise CollaboratorAmbiguousResult('Queue "%s" does not exist.' % queue)
	if len(matches) > 1:
		raise CollaboratorAmbiguousResult('Queue name "%s" matches %d queues: %s' % (queue, len(matches), ', '.join(m[0] for m in matches)))

	url, attributes = matches[0]
	try:
		count = int(attributes[COUNT_ATTRIBUTE])
	except (KeyError, TypeError, ValueError):
		raise CollaboratorMalformedResponse('Unusable %s for %s: %r' % (COUNT_ATTRIBUTE, url, attributes.get(COUNT_ATTRIBUTE)))
	log.info('Queue %s holds %s messages', url, count)
	return count


def get_smtp_settings(configfile):
	"""Read the [SMTP] section needed by --notify"""
	config = read_config(configfile, required=configfile != DEFAULT_CONFIG)
	settings = {}
	for option in ('smtp_server', 'smtp_port', 'smtp_user', 'smtp_password'):
		if not config.has_option('SMTP', option):
			raise ConfigurationError('Option "%s" not defined in the [SMTP] section of "%s".' % (option, configfile))
		settings[option] = config.get('SMTP', option)
	try:
		settings['smtp_port'] = int(settings['smtp_port'])
	except ValueError:
		raise ConfigurationError('smtp_port "%s" is not a number.' % settings['smtp_port'])
	return settings


def alert_by_email(smtp, queue, message, recipients, timeout):
	# Connect to SMTP server; timeout bounds every socket operation
	server = smtplib.SMTP(smtp['smtp_server'], smtp['smtp_port'], timeout=timeout)
	try:
		server.set_debuglevel(0)
		server.ehlo(smtp['smtp_user'])
		server.starttls()
		server.ehlo(smtp['smtp_user'])
		server.login(smtp['smtp_user'], smtp['smtp_password'])

		# Build and send message
		msg_subject = 'Queue CRITICAL: "%s"' % queue
		for recipient in recipients.split(','):
			recipient = recipient.strip()
			if not recipient:
				continue
			msg = 'Subject: %s\nTo: %s\n\n%s' % (msg_subject, recipient, message)
			server.sendmail(smtp['smtp_user'], recipient, msg)
			log.info('Notified %s', recipient)
	finally:
		server.quit()


def main(argv=None):
	# Parse arguments
	parser = build_parser(USAGE, WARNING_THRESHOLD, CRITICAL_THRESHOLD, hush=True)
	parser.add_option("-q", "--queue", dest="queue", help="Amazon SQS queue name (name only, not the URL)")
	parser.add_option("-r", "--region", dest="region", metavar="NAME", help="AWS region of the queue")
	parser.add_option("-n", "--notify", dest="recipients", metavar='RECIPIENT(s)', help="comma-separated list of email addresses to notify")
	try:
		options = parse_options(parser, argv)
		if not options.queue:
			raise ConfigurationError('No queue specified.')
		smtp = None
		if options.recipients:
			smtp = get_smtp_settings(options.configfile)
		credentials = load_credentials(options.configfile, options.profile,
			required=options.configfile != DEFAULT_CONFIG)
		sqs = connect('sqs', credentials, options.region, options.timeout)
	except ConfigurationError as e:
		report(SHORTNAME, Result(UNKNOWN, str(e)))

	# Get queue length, compare to thresholds, and take appropriate action
	result = run_check(lambda: get_queue_count(sqs, options.queue, options.timeout),
		'Queue "%s" length' % options.queue, 'messages',
		options.warn, options.crit, hush=options.hush)
	if result.status == CRITICAL and smtp:
		try:
			alert_by_email(smtp, options.queue, result.message, options.recipients, options.timeout)
		except (smtplib.SMTPException, OSError) as e:
			log.error('Could not send notification: %s', e)
	report(SHORTNAME, result)


if __name__ == '__main__':
	main()
