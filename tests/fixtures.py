"""Shared builders for store state."""

from pymongo.errors import PyMongoError

from friendchat.records import UpsertUserInput


async def make_user(services, email, name=None):
    return await services.queries.upsert_user(UpsertUserInput(email=email, name=name))


async def make_friends(services, email_a="a@x.com", email_b="b@x.com"):
    a = await make_user(services, email_a, "Ann")
    b = await make_user(services, email_b, "Bob")
    await services.relationships.send_friend_request(a.id, b.id)
    await services.relationships.accept_friend_request(a.id, b.id)
    return a, b


async def reload(services, user):
    return await services.store.get_user(user.id)


class FlakyDatabase:
    """Wraps a database so the n-th call of one collection method raises."""

    def __init__(self, db, collection, method, fail_on=1):
        self.db = db
        self.collection = collection
        self.method = method
        self.fail_on = fail_on
        self.calls = 0

    def __getattr__(self, name):
        target = getattr(self.db, name)
        if name != self.collection:
            return target
        return _FlakyCollection(self, target)


class _FlakyCollection:

    def __init__(self, owner, target):
        self._owner = owner
        self._target = target

    def __getattr__(self, name):
        attr = getattr(self._target, name)
        if name != self._owner.method:
            return attr

        async def call(*args, **kwargs):
            self._owner.calls += 1
            if self._owner.calls == self._owner.fail_on:
                raise PyMongoError("connection reset")
            return await attr(*args, **kwargs)

        return call
