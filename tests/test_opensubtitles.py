import threading
import time
from unittest.mock import Mock, patch

import pytest
import requests
from autotagger.config import Settings
from autotagger.errors import ConfigurationError, NoSubtitlesFoundError, ProviderError
from autotagger.models import Episode
from autotagger.opensubtitles import OpenSubtitlesClient, SubtitleSummary, TokenCache, get_subtitles

SEARCH_RESPONSE = {
    'data': [
        {
            'attributes': {
                'language': 'en',
                'uploader': {'name': 'alice', 'rank': 'trusted'},
                'files': [
                    {'file_id': 101, 'file_name': 'show.s01e01.srt'},
                    {'file_id': 102, 'file_name': 'show.s01e01.hi.srt'},
                ],
            }
        },
        {
            'attributes': {
                'language': 'en',
                'uploader': {'name': 'bob', 'rank': 'bronze member'},
                'files': [{'file_id': 201, 'file_name': 'Show 1x01.srt'}],
            }
        },
    ]
}


def response(json_data=None, text="", status=200):
    resp = Mock(status_code=status, text=text)
    resp.json.return_value = json_data
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Error", response=resp)
    return resp


def make_client(session, **settings):
    settings.setdefault('ost_api_key', 'api-key')
    return OpenSubtitlesClient(Settings(**settings), session=session, credentials=lambda: ("user", "secret"))


@pytest.fixture
def session():
    session = Mock()

    def post(url, **kwargs):
        if url.endswith("/login"):
            return response({'token': 'tok-123'})
        if url.endswith("/download"):
            return response({'link': 'https://dl.example/file.srt'})
        raise AssertionError(url)

    def get(url, **kwargs):
        if url.endswith("/subtitles"):
            return response(SEARCH_RESPONSE)
        if url == 'https://dl.example/file.srt':
            return response(text="1\n00:00:01,000 --> 00:00:02,000\nHi\n")
        raise AssertionError(url)

    session.post.side_effect = post
    session.get.side_effect = get
    return session


def login_calls(session):
    return [c for c in session.post.call_args_list if c[0][0].endswith("/login")]


def test_missing_api_key():
    with pytest.raises(ConfigurationError, match="OST_API_KEY"):
        OpenSubtitlesClient(Settings(), session=Mock())


def test_search_flattens_files(session):
    client = make_client(session)

    files = client.search_subtitles(62085)

    assert [f.file_id for f in files] == [101, 102, 201]
    assert files[2] == SubtitleSummary(201, 'Show 1x01.srt', 'en', 'bob', 'bronze member')
    assert files[0].describe() == "lang: en, name: show.s01e01.srt, uploader: alice (trusted)"
    kwargs = session.get.call_args[1]
    assert kwargs['params'] == {'tmdb_id': '62085'}
    assert kwargs['headers']['Authorization'] == "Bearer tok-123"
    assert kwargs['headers']['Api-Key'] == "api-key"
    assert kwargs['headers']['User-Agent'] == "plex-autotagger"
    assert kwargs['timeout'] == 30.0


def test_token_fetched_once(session):
    client = make_client(session)

    client.search_subtitles(1)
    client.search_subtitles(2)
    client.download(101)

    assert len(login_calls(session)) == 1
    assert login_calls(session)[0][1]['json'] == {'username': 'user', 'password': 'secret'}


def test_credentials_from_settings(session):
    prompt = Mock()
    client = OpenSubtitlesClient(
        Settings(ost_api_key='k', ost_username='carol', ost_password='pw'),
        session=session,
        credentials=prompt
    )
    client.search_subtitles(1)
    prompt.assert_not_called()
    assert login_calls(session)[0][1]['json'] == {'username': 'carol', 'password': 'pw'}


def test_login_rejected(session):
    session.post.side_effect = lambda url, **kwargs: response({'message': 'nope'}, status=401)
    client = make_client(session)
    with pytest.raises(ProviderError, match="invalid credentials"):
        client.search_subtitles(1)
    assert client.token_cache.token is None


def test_search_network_error(session):
    session.get.side_effect = requests.exceptions.ConnectionError("offline")
    client = make_client(session)
    with pytest.raises(ProviderError, match="Error querying subtitles"):
        client.search_subtitles(1)


def test_download_follows_link(session):
    client = make_client(session)
    assert client.download(101) == "1\n00:00:01,000 --> 00:00:02,000\nHi\n"
    download_call = [c for c in session.post.call_args_list if c[0][0].endswith("/download")][0]
    assert download_call[1]['json'] == {'file_id': 101}


def test_token_cache_concurrent_fetch_runs_once():
    cache = TokenCache()
    fetches = []

    def fetch():
        fetches.append(1)
        time.sleep(0.05)
        return "token"

    results = []
    threads = [threading.Thread(target=lambda: results.append(cache.get_or_fetch(fetch))) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == ["token"] * 8
    assert len(fetches) == 1


def test_token_cache_retries_after_failed_fetch():
    cache = TokenCache()

    def failing():
        raise ProviderError("down")

    with pytest.raises(ProviderError):
        cache.get_or_fetch(failing)
    assert cache.get_or_fetch(lambda: "later") == "later"


EPISODE = Episode(id=62085, season_number=1, episode_number=1, name="Pilot")


def test_get_subtitles_uses_first_result():
    client = Mock()
    client.search_subtitles.return_value = [SubtitleSummary(7, 'a.srt', 'en', 'u', 'r')]
    client.download.return_value = "text"
    assert get_subtitles(client, EPISODE) == "text"
    client.download.assert_called_once_with(7)


def test_get_subtitles_none_found():
    client = Mock()
    client.search_subtitles.return_value = []
    with pytest.raises(NoSubtitlesFoundError):
        get_subtitles(client, EPISODE)


@patch("autotagger.opensubtitles.page")
@patch("autotagger.opensubtitles.confirm")
@patch("autotagger.opensubtitles.select")
def test_get_subtitles_manual_selection_with_preview(mock_select, mock_confirm, mock_page):
    client = Mock()
    client.search_subtitles.return_value = [
        SubtitleSummary(7, 'a.srt', 'en', 'u', 'r'),
        SubtitleSummary(8, 'b.srt', 'en', 'u', 'r'),
    ]
    client.download.side_effect = lambda file_id: f"text-{file_id}"
    mock_select.side_effect = [0, 1]
    # preview first -> reject, preview second -> accept
    mock_confirm.side_effect = [True, False, True, True]

    assert get_subtitles(client, EPISODE, prompt_user=True) == "text-8"
    assert mock_page.call_count == 2
