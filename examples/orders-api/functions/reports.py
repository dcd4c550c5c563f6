import json
import os
from collections import Counter

import boto3

table = boto3.resource("dynamodb").Table(os.environ["TABLE_NAME"])


def handler(event, context):
    counts = Counter(item["customer"] for item in table.scan()["Items"])
    return {"statusCode": 200, "body": json.dumps(dict(counts))}
