from procspec.adapters.dbapi import DBAPICall, DBAPICallFactory, DBAPIConnectionProvider

__all__ = ("DBAPICall", "DBAPICallFactory", "DBAPIConnectionProvider")
