# utils/json_encoder.py
from bson import ObjectId
from datetime import date, datetime
from flask.json.provider import DefaultJSONProvider

class MongoJSONProvider(DefaultJSONProvider):
    """
    A JSON provider for Flask that can handle MongoDB's ObjectId and datetime objects.
    """
    @staticmethod
    def default(o):
        """
        Called for any object that the default JSON provider
        doesn't know how to serialize.
        """
        if isinstance(o, ObjectId):
            return str(o)
        if isinstance(o, datetime):
            # ISO 8601 instead of Flask's HTTP date format.
            return o.isoformat()
        if isinstance(o, date):
            return o.strftime('%Y-%m-%d')
        return DefaultJSONProvider.default(o)
