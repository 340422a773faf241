"""Tests for the resource references (paths, decoders and verbs)."""
import pytest

from modiopy import AuthError, AuthErrorKind
from modiopy.types_models import COMMENT, GAME, MESSAGE, MODDEPENDENCY, TAG

from conftest import HOST, listing, make_response, modfile, query_of, sent_urls


def path_of(url):
    return url.split("?", 1)[0]


def test_games_listing(client, session):
    session.request.return_value = make_response(json_body=listing([{"id": 5, "name": "Game"}]))

    page = client.games().list({"name-lk": "Gam*"})

    assert isinstance(page[0], GAME)
    sent = sent_urls(session)[0]
    assert path_of(sent) == f"{HOST}/games"
    assert query_of(sent)["name-lk"] == ["Gam*"]


def test_none_params_are_dropped(client, session):
    session.request.return_value = make_response(json_body=listing([]))

    client.game(5).mods().list({"tags": None, "_limit": 5})

    assert query_of(sent_urls(session)[0]) == {"_limit": ["5"], "api_key": ["KEY"]}


def test_game_tags_and_mod_dependencies(client, session):
    session.request.side_effect = [
        make_response(json_body=listing([{"name": "Maps", "date_added": 1}])),
        make_response(json_body=listing([{"mod_id": 42}])),
    ]

    tags = client.game(5).tags().list()
    deps = list(client.mod(5, 19).dependencies().iter())

    assert isinstance(tags[0], TAG) and tags[0].name == "Maps"
    assert isinstance(deps[0], MODDEPENDENCY) and deps[0].mod_id == 42
    assert [path_of(u) for u in sent_urls(session)] == [
        f"{HOST}/games/5/tags",
        f"{HOST}/games/5/mods/19/dependencies",
    ]


def test_adding_tags_posts_a_form(client, session):
    session.request.return_value = make_response(201, json_body={"code": 201, "message": "added"})

    result = client.mod(5, 19).tags().add({"tags[]": ["a", "b"]})

    assert result == MESSAGE(code=201, message="added")
    method, url = session.request.call_args.args
    assert method == "POST"
    assert path_of(url) == f"{HOST}/games/5/mods/19/tags"
    assert session.request.call_args.kwargs["data"] == "tags%5B%5D=a&tags%5B%5D=b"


def test_comments(client, session):
    session.request.side_effect = [
        make_response(json_body={"id": 3, "mod_id": 19, "content": "nice", "user": {"id": 7}}),
        make_response(204, body=b""),
    ]
    comments = client.mod(5, 19).comments()

    comment = comments.get(3)
    comments.delete(3)

    assert isinstance(comment, COMMENT)
    assert comment.user.id == 7
    calls = session.request.call_args_list
    assert [c.args[0] for c in calls] == ["GET", "DELETE"]
    assert all(path_of(c.args[1]) == f"{HOST}/games/5/mods/19/comments/3" for c in calls)


def test_file_reference(client, session):
    session.request.side_effect = [
        make_response(json_body=modfile(101)),
        make_response(204, body=b""),
    ]
    ref = client.mod(5, 19).file(101)

    assert ref.get().download.binary_url == "https://binary.modcdn.io/101.zip"
    assert ref.delete() is None
    method, url = session.request.call_args.args
    assert method == "DELETE"
    assert path_of(url) == f"{HOST}/games/5/mods/19/files/101"


@pytest.mark.parametrize("call", ["subscriptions", "mods", "files"])
def test_me_listings_require_token(client, session, call):
    with pytest.raises(AuthError) as exc:
        getattr(client.me(), call)()
    assert exc.value.kind is AuthErrorKind.TOKEN_REQUIRED
    session.request.assert_not_called()


def test_me_subscriptions_with_token(token_client, session):
    session.request.return_value = make_response(json_body=listing([{"id": 1, "game_id": 5}]))

    mods = list(token_client.me().subscriptions({"game_id": 5}))

    assert [m.id for m in mods] == [1]
    assert sent_urls(session)[0] == f"{HOST}/me/subscribed?game_id=5"
