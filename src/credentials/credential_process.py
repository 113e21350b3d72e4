"""Print assumed-role credentials in the AWS CLI ``credential_process`` format.

Point a profile at it in ``~/.aws/config``::

    [profile analytics]
    credential_process = role-credentials --role-arn arn:aws:iam::123456789012:role/analytics
"""

import sys
import json
import logging
import argparse

from src.credentials.provider import RoleBasedCredentialProvider
from src.credentials.services.config import Config
from src.credentials.services.logging_util import setup_logging
from src.credentials.services.sts_client import STSClient

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="role-credentials",
                                     description="Assume an IAM role and print credential_process JSON.")
    parser.add_argument("--role-arn", help="role to assume (defaults to ASSUME_ROLE_ARN, then AWS_ROLE_ARN)")
    parser.add_argument("--session-name-prefix", help="prefix of the STS role session name")
    parser.add_argument("--region", help="STS region")
    return parser.parse_args(argv)


def to_credential_process(session):
    return {
        "Version": 1,
        "AccessKeyId": session.access_key_id,
        "SecretAccessKey": session.secret_access_key,
        "SessionToken": session.session_token,
        "Expiration": session.expires_at.isoformat(),
    }


def main(argv=None, config=None, assume_role=None, stdout=None):
    args = parse_args(argv)
    config = config or Config()
    setup_logging(config.log_level)

    provider = RoleBasedCredentialProvider(
        role_arn=args.role_arn or config.role_arn,
        session_name_prefix=args.session_name_prefix or config.session_name_prefix,
        assume_role=assume_role or STSClient(region=args.region or config.region).assume_role,
    )
    session = provider.get()
    if session is None:
        logger.error("No credentials available: no role configured or AssumeRole failed")
        return 1

    out = stdout or sys.stdout
    out.write(json.dumps(to_credential_process(session), indent=2) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
