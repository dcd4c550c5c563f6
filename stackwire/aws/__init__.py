# Importing the kind modules registers their materializers
from stackwire.aws import api_gateway, cloudfront, dynamo_db, function, log_group, s3

__all__ = ["api_gateway", "cloudfront", "dynamo_db", "function", "log_group", "s3"]
