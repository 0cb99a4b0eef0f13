import pytest

import awsclient

AWS_VARIABLES = ('AWS_ACCESS_KEY_ID', 'AWS_SECRET_ACCESS_KEY', 'AWS_SESSION_TOKEN', 'AWS_DEFAULT_REGION', 'AWS_PROFILE')

default_chain_credentials = awsclient._default_chain_credentials


@pytest.fixture(autouse=True)
def isolated_aws(monkeypatch):
	"""Keep the developer's own AWS setup out of the tests"""
	for name in AWS_VARIABLES:
		monkeypatch.delenv(name, raising=False)
	monkeypatch.setattr(awsclient, '_default_chain_credentials', lambda: None)


@pytest.fixture
def empty_home(monkeypatch, tmp_path):
	"""boto3's own credential chain, pointed at a home without any AWS files"""
	monkeypatch.setenv('HOME', str(tmp_path))
	monkeypatch.setenv('AWS_CONFIG_FILE', str(tmp_path / 'aws-config'))
	monkeypatch.setenv('AWS_SHARED_CREDENTIALS_FILE', str(tmp_path / 'aws-credentials'))
	monkeypatch.setattr(awsclient, '_default_chain_credentials', default_chain_credentials)
	return tmp_path


@pytest.fixture
def credentials():
	return awsclient.Credentials('AKIDEXAMPLE', 'secret', region='us-east-1')


@pytest.fixture
def config_file(tmp_path):
	path = tmp_path / 'credentials'
	path.write_text(
		'[default]\n'
		'aws_access_key_id = AKIDDEFAULT\n'
		'aws_secret_access_key = defaultsecret\n'
		'\n'
		'[profile monitoring]\n'
		'aws_access_key_id = AKIDMONITOR\n'
		'aws_secret_access_key = monitorsecret\n'
		'aws_session_token = token\n'
		'region = eu-west-1\n'
		'\n'
		'[half]\n'
		'aws_access_key_id = AKIDHALF\n'
		'\n'
		'[SMTP]\n'
		'smtp_server = smtp.example.com\n'
		'smtp_port = 587\n'
		'smtp_user = nagios@example.com\n'
		'smtp_password = hunter2\n'
	)
	return str(path)
