from botocore.exceptions import ClientError

# Table TTL attribute: DynamoDB expires codes nobody ever verifies.
TTL_ATTRIBUTE = 'expires_at'


class VerificationStore:
    """Pending student-email verifications, one item per user_id."""

    def __init__(self, table):
        self.table = table

    def put_pending(self, user_id, email, code, now, ttl_seconds):
        item = {
            'user_id': user_id,
            'email': email,
            'otp': code,
            'created_at': int(now),
            TTL_ATTRIBUTE: int(now) + ttl_seconds
        }
        # Overwrites any earlier code for this user.
        self.table.put_item(Item=item)
        return item

    def get_pending(self, user_id):
        response = self.table.get_item(Key={'user_id': user_id}, ConsistentRead=True)
        return response.get('Item')

    def consume(self, user_id, code):
        """
        Deletes the record only if it still holds code. Returns False when
        another request already consumed or replaced it.
        """
        try:
            self.table.delete_item(
                Key={'user_id': user_id},
                ConditionExpression="attribute_exists(user_id) AND otp = :otp",
                ExpressionAttributeValues={':otp': code}
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                return False
            raise
        return True


class ProfileStore:
    """User profiles. Created elsewhere at sign-up; only updated here."""

    def __init__(self, table):
        self.table = table

    def mark_student_verified(self, user_id, university_email, now):
        response = self.table.update_item(
            Key={'user_id': user_id},
            UpdateExpression="SET is_student_verified = :verified, university_email = :email, updated_at = :now",
            ConditionExpression="attribute_exists(user_id)",
            ExpressionAttributeValues={
                ':verified': True,
                ':email': university_email,
                ':now': int(now)
            },
            ReturnValues="ALL_NEW"
        )
        return response.get('Attributes')
