#!/usr/bin/env python
# encoding: utf-8
"""
awsclient.py

Credential lookup and deadline-guarded boto3 calls for the checks.

Copyright (c) 2026 The check_aws_nagios authors. All rights reserved.
"""

import configparser
import logging
import os

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, PartialCredentialsError

from nagioscheck import CollaboratorError, ConfigurationError, DEFAULT_PROFILE, call_with_deadline

log = logging.getLogger('awsclient')

DEFAULT_REGION = 'us-east-1'

# Error codes meaning the keys themselves were rejected
CREDENTIAL_ERRORS = frozenset([
	'AuthFailure',
	'InvalidAccessKeyId',
	'InvalidClientTokenId',
	'SignatureDoesNotMatch',
	'UnrecognizedClientException',
])


class Credentials:
	def __init__(self, access_key, secret_key, session_token=None, region=None):
		self.access_key = access_key
		self.secret_key = secret_key
		self.session_token = session_token
		self.region = region

	def __repr__(self):
		return 'Credentials(%s..., region=%r)' % (self.access_key[:4], self.region)


def read_config(configfile, required=False):
	"""Parse an INI config file; a missing file is only an error when it was asked for"""
	path = os.path.expanduser(configfile)
	config = configparser.ConfigParser(interpolation=None)
	if not os.path.exists(path):
		if required:
			raise ConfigurationError('Configuration file "%s" does not exist.' % configfile)
		log.debug('No configuration file at %s', path)
		return config
	try:
		config.read(path)
	except configparser.Error as e:
		raise ConfigurationError('Cannot parse configuration file "%s": %s' % (configfile, e))
	return config


def _from_section(config, profile):
	for section in (profile, 'profile %s' % profile):
		if config.has_section(section):
			return config[section]
	return None


def _pair(access_key, secret_key, origin):
	if bool(access_key) != bool(secret_key):
		raise ConfigurationError('Incomplete AWS credentials in %s: need both the access key id and the secret key.' % origin)
	return bool(access_key)


def _default_chain_credentials():
	"""Whatever boto3 finds on its own (instance role, container credentials, ...)"""
	frozen = None
	try:
		credentials = boto3.Session().get_credentials()
		if credentials is not None:
			frozen = credentials.get_frozen_credentials()
	except BotoCoreError as e:
		raise ConfigurationError('Cannot load AWS credentials: %s' % e)
	return frozen


def load_credentials(configfile, profile=DEFAULT_PROFILE, required=False):
	"""Find AWS keys for profile.

	Set the keys according to first match in:
	1) the profile's section of the config file
	2) the AWS_* environment variables
	3) boto3's default credential chain
	"""
	config = read_config(configfile, required)
	section = _from_section(config, profile)
	if section is None and profile != DEFAULT_PROFILE:
		raise ConfigurationError('Profile "%s" not found in "%s".' % (profile, configfile))

	if section is not None:
		access_key = section.get('aws_access_key_id')
		secret_key = section.get('aws_secret_access_key')
		if _pair(access_key, secret_key, '"%s" [%s]' % (configfile, section.name)):
			log.info('Using credentials from %s [%s]', configfile, section.name)
			return Credentials(access_key, secret_key, section.get('aws_session_token'), section.get('region'))

	access_key = os.getenv('AWS_ACCESS_KEY_ID')
	secret_key = os.getenv('AWS_SECRET_ACCESS_KEY')
	if _pair(access_key, secret_key, 'the environment'):
		log.info('Using credentials from the environment')
		return Credentials(access_key, secret_key, os.getenv('AWS_SESSION_TOKEN'), os.getenv('AWS_DEFAULT_REGION'))

	frozen = _default_chain_credentials()
	if frozen is None or not frozen.access_key:
		raise ConfigurationError('AWS credentials are not defined: no profile "%s" in "%s", no AWS_ACCESS_KEY_ID in the environment.' % (profile, configfile))
	log.info('Using credentials from the boto3 default chain')
	return Credentials(frozen.access_key, frozen.secret_key, frozen.token)


def connect(service, credentials, region=None, timeout=None):
	"""boto3 client for service that gives up with the deadline and never retries"""
	region = region or credentials.region or DEFAULT_REGION
	settings = {'retries': {'total_max_attempts': 1}}
	if timeout:
		settings.update(connect_timeout=timeout, read_timeout=timeout)
	log.debug('Connecting to %s in %s', service, region)
	try:
		session = boto3.Session(
			aws_access_key_id=credentials.access_key,
			aws_secret_access_key=credentials.secret_key,
			aws_session_token=credentials.session_token,
			region_name=region,
		)
		return session.client(service, config=Config(**settings))
	except BotoCoreError as e:
		raise ConfigurationError('Cannot create %s client in region "%s": %s' % (service, region, e))


def aws_call(timeout, method, **kwargs):
	"""Call one boto3 client method under the deadline, translating botocore errors"""
	name = getattr(method, '__name__', 'AWS call')
	log.debug('Calling %s(%s)', name, kwargs)
	try:
		response = call_with_deadline(timeout, method, **kwargs)
	except (NoCredentialsError, PartialCredentialsError) as e:
		raise ConfigurationError(str(e))
	except ClientError as e:
		code = e.response.get('Error', {}).get('Code', '')
		if code in CREDENTIAL_ERRORS:
			raise ConfigurationError('AWS rejected the credentials: %s' % e)
		raise CollaboratorError('%s failed: %s' % (name, e))
	except BotoCoreError as e:
		raise CollaboratorError('%s failed: %s' % (name, e))
	log.debug('%s returned %s', name, response)
	return response
