import boto3


class STSClient:
    def __init__(self, region=None, client=None):
        self.client = client or boto3.client('sts', region_name=region)

    def assume_role(self, role_arn, session_name, duration_seconds=None):
        params = {"RoleArn": role_arn, "RoleSessionName": session_name}
        if duration_seconds:
            params["DurationSeconds"] = duration_seconds
        resp = self.client.assume_role(**params)
        return resp.get('Credentials')
