def handler(event, context):
    token = event.get("authorizationToken", "")
    customer = token.removeprefix("Bearer ").strip()
    effect = "Allow" if customer else "Deny"
    return {
        "principalId": customer or "anonymous",
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [
                {"Action": "execute-api:Invoke", "Effect": effect, "Resource": event["methodArn"]}
            ],
        },
    }
