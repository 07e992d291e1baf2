"""
Friend-request lifecycle: None -> Pending -> Friends, Pending -> None.
"""

import pytest
from bson import ObjectId

from friendchat.errors import (
    AlreadyFriends,
    AlreadyRequested,
    NotFound,
    PersistenceFailure,
    RequestNotFound,
    ValidationFailure,
)

from .fixtures import FlakyDatabase, make_friends, make_user, reload


class TestSendFriendRequest:

    def test_request_lands_in_receiver_requests(self, services, run):
        async def scenario():
            a = await make_user(services, "a@x.com")
            b = await make_user(services, "b@x.com")
            receiver = await services.relationships.send_friend_request(a.id, b.id)
            assert receiver.id == b.id
            assert receiver.requests == [a.id]
            # sender side untouched
            assert (await reload(services, a)).requests == []

        run(scenario())

    def test_second_request_is_already_requested(self, services, run):
        async def scenario():
            a = await make_user(services, "a@x.com")
            b = await make_user(services, "b@x.com")
            await services.relationships.send_friend_request(a.id, b.id)
            with pytest.raises(AlreadyRequested):
                await services.relationships.send_friend_request(str(a.id), str(b.id))
            assert (await reload(services, b)).requests == [a.id]

        run(scenario())

    def test_request_between_friends_is_already_friends(self, services, run):
        async def scenario():
            a, b = await make_friends(services)
            with pytest.raises(AlreadyFriends):
                await services.relationships.send_friend_request(a.id, b.id)

        run(scenario())

    def test_unknown_user_is_not_found(self, services, run):
        async def scenario():
            a = await make_user(services, "a@x.com")
            with pytest.raises(NotFound):
                await services.relationships.send_friend_request(a.id, ObjectId())
            with pytest.raises(NotFound):
                await services.relationships.send_friend_request("garbage", a.id)

        run(scenario())

    def test_self_request_rejected(self, services, run):
        async def scenario():
            a = await make_user(services, "a@x.com")
            with pytest.raises(ValidationFailure):
                await services.relationships.send_friend_request(a.id, str(a.id))

        run(scenario())


class TestAcceptFriendRequest:

    def test_accept_makes_friendship_symmetric(self, services, run):
        async def scenario():
            a, b = await make_friends(services)
            a2 = await reload(services, a)
            b2 = await reload(services, b)
            assert b.id in a2.friends
            assert a.id in b2.friends
            assert b2.requests == []

        run(scenario())

    def test_accept_without_request(self, services, run):
        async def scenario():
            a = await make_user(services, "a@x.com")
            b = await make_user(services, "b@x.com")
            with pytest.raises(RequestNotFound):
                await services.relationships.accept_friend_request(a.id, b.id)
            assert (await reload(services, b)).friends == []

        run(scenario())

    def test_accept_with_missing_requester(self, services, run):
        async def scenario():
            b = await make_user(services, "b@x.com")
            with pytest.raises(NotFound):
                await services.relationships.accept_friend_request(ObjectId(), b.id)

        run(scenario())

    def test_accept_when_already_mutual(self, services, run):
        async def scenario():
            a, b = await make_friends(services)
            # a stale request left behind
            await services.store.add_request(b.id, a.id)
            with pytest.raises(AlreadyFriends):
                await services.relationships.accept_friend_request(a.id, b.id)

        run(scenario())

    def test_retry_after_failed_second_write_completes_friendship(self, services, run, monkeypatch):
        async def scenario():
            a = await make_user(services, "a@x.com")
            b = await make_user(services, "b@x.com")
            await services.relationships.send_friend_request(a.id, b.id)

            real_db = services.store.db
            monkeypatch.setattr(services.store, "db", FlakyDatabase(real_db, "users", "update_one", fail_on=2))
            with pytest.raises(PersistenceFailure):
                await services.relationships.accept_friend_request(a.id, b.id)
            monkeypatch.setattr(services.store, "db", real_db)

            # request still pending, so the accept can be re-issued
            assert (await reload(services, b)).requests == [a.id]
            await services.relationships.accept_friend_request(a.id, b.id)

            a2 = await reload(services, a)
            b2 = await reload(services, b)
            assert a2.friends == [b.id]
            assert b2.friends == [a.id]
            assert b2.requests == []

        run(scenario())


class TestDeleteFriendRequest:

    def test_decline_removes_request_only(self, services, run):
        async def scenario():
            a = await make_user(services, "a@x.com")
            b = await make_user(services, "b@x.com")
            await services.relationships.send_friend_request(a.id, b.id)
            await services.relationships.delete_friend_request(a.id, b.id)
            b2 = await reload(services, b)
            assert b2.requests == []
            assert b2.friends == []
            # can ask again afterwards
            await services.relationships.send_friend_request(a.id, b.id)

        run(scenario())

    def test_decline_unknown_request(self, services, run):
        async def scenario():
            a = await make_user(services, "a@x.com")
            b = await make_user(services, "b@x.com")
            with pytest.raises(RequestNotFound):
                await services.relationships.delete_friend_request(a.id, b.id)
            with pytest.raises(NotFound):
                await services.relationships.delete_friend_request(ObjectId(), b.id)

        run(scenario())


class TestReads:

    def test_get_requests_and_friends(self, services, run):
        async def scenario():
            a, b = await make_friends(services)
            c = await make_user(services, "c@x.com", "Cid")
            await services.relationships.send_friend_request(c.id, b.id)

            requests = await services.relationships.get_requests(b.id)
            assert [u.email for u in requests] == ["c@x.com"]

            friends = await services.relationships.get_friends(b.id)
            assert [u.id for u in friends] == [a.id]

        run(scenario())

    def test_dangling_id_fails_the_whole_read(self, services, run):
        async def scenario():
            a, b = await make_friends(services)
            await services.store.add_friend(b.id, ObjectId())
            with pytest.raises(NotFound):
                await services.relationships.get_friends(b.id)

        run(scenario())

    def test_unknown_user(self, services, run):
        async def scenario():
            with pytest.raises(NotFound):
                await services.relationships.get_requests(ObjectId())

        run(scenario())
