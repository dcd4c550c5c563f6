import json
import os
import time

import boto3

table = boto3.resource("dynamodb").Table(os.environ["TABLE_NAME"])


def handler(event, context):
    customer = event["requestContext"]["authorizer"]["principalId"]
    if event["httpMethod"] == "POST":
        item = {"customer": customer, "created": int(time.time()), **json.loads(event["body"])}
        table.put_item(Item=item)
        return {"statusCode": 201, "body": json.dumps(item, default=str)}

    created = (event.get("pathParameters") or {}).get("created")
    if created:
        item = table.get_item(Key={"customer": customer, "created": int(created)}).get("Item")
        if item is None:
            return {"statusCode": 404, "body": json.dumps({"message": "not found"})}
        return {"statusCode": 200, "body": json.dumps(item, default=str)}

    items = table.query(
        KeyConditionExpression="customer = :c", ExpressionAttributeValues={":c": customer}
    )["Items"]
    return {"statusCode": 200, "body": json.dumps(items, default=str)}
