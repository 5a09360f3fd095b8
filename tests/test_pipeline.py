"""
End-to-end runs of the digest pipeline against in-memory collaborators
"""
from newsagent.audio.assembler import AudioAssembler
from newsagent.core.entities import RunStage, Source, Trigger
from newsagent.storage.object_store import audio_key
from newsagent.workflows.digest_pipeline import (
    WARN_COMBINED_UPLOAD,
    WARN_NO_COMBINED_AUDIO,
    ClientSet,
    DigestPipeline,
)

from conftest import (
    FIXED_NOW,
    RUN_DATE,
    FakeExtractor,
    FakeMailer,
    FakeObjectStore,
    FakeSource,
    FakeSummarizer,
    RecordingSynthesizer,
    make_item,
)


def hn_items(n=2):
    return [make_item(Source.HACKER_NEWS, i, title=f"HN {i}") for i in range(n)]


def gh_items(n=1):
    return [make_item(Source.GITHUB_TRENDING, i, title=f"GH {i}") for i in range(n)]


def build_pipeline(
    sqlite_store,
    *,
    sources=None,
    extractor=None,
    summarizer=None,
    synthesizer=None,
    object_store=None,
    mailer=None,
    audio=True,
):
    clients = ClientSet(
        sources=sources if sources is not None else [
            FakeSource(Source.HACKER_NEWS, hn_items()),
            FakeSource(Source.GITHUB_TRENDING, gh_items()),
        ],
        extractor=extractor or FakeExtractor(),
        summarizer=summarizer or FakeSummarizer(),
        object_store=object_store or FakeObjectStore(),
        store=sqlite_store,
        assembler=AudioAssembler(synthesizer or RecordingSynthesizer()) if audio else None,
        mailer=mailer if mailer is not None else FakeMailer(),
    )
    return DigestPipeline(
        clients,
        recipient="reader@example.com",
        sender="digest@example.com",
        clock=lambda: FIXED_NOW,
    )


class TestHappyPath:
    async def test_full_run(self, sqlite_store):
        mailer = FakeMailer()
        objects = FakeObjectStore()
        pipeline = build_pipeline(sqlite_store, mailer=mailer, object_store=objects)

        result = await pipeline.run(Trigger.SCHEDULED)

        assert result.stage == RunStage.DONE
        assert result.succeeded
        assert result.run_date == RUN_DATE
        assert result.item_count == 3
        assert [i.source for i in result.items] == [
            Source.HACKER_NEWS, Source.HACKER_NEWS, Source.GITHUB_TRENDING,
        ]
        assert all(i.has_summary for i in result.items)
        assert all(i.audio_url for i in result.items)
        assert result.email_sent is True
        assert result.warnings == []

        combined_key = audio_key(RUN_DATE, "daily-digest")
        assert result.combined_audio_url == f"https://audio.example.com/{combined_key}"
        assert combined_key in objects.objects

        assert len(mailer.sent) == 1
        assert result.combined_audio_url in mailer.sent[0]["html"]

        record = await sqlite_store.get_digest(RUN_DATE)
        assert record.total_items == 3
        assert record.email_sent is True
        assert record.combined_audio_url == result.combined_audio_url
        assert len(await sqlite_store.items_for_date(RUN_DATE)) == 3

    async def test_result_dict(self, sqlite_store):
        result = await build_pipeline(sqlite_store).run(Trigger.DIRECT)
        data = result.to_dict()

        assert data["status"] == "success"
        assert data["trigger"] == "direct"
        assert data["itemCount"] == 3
        assert data["emailSent"] is True
        assert data["timestamp"] == "2024-05-01T08:00:00Z"
        assert data["items"][0]["id"] == f"hacker-news-{RUN_DATE}-0"

    async def test_limits_passed_to_sources(self, sqlite_store):
        hn = FakeSource(Source.HACKER_NEWS, hn_items(3))
        gh = FakeSource(Source.GITHUB_TRENDING, gh_items(2))
        pipeline = build_pipeline(sqlite_store, sources=[hn, gh])

        result = await pipeline.run(limits={"hacker-news": 1})

        assert hn.requested_limits == [1]
        assert gh.requested_limits == [None]
        assert result.item_count == 3


class TestDegradedRuns:
    async def test_source_failure_contributes_no_items(self, sqlite_store):
        sources = [
            FakeSource(Source.HACKER_NEWS, hn_items(), fail=True),
            FakeSource(Source.GITHUB_TRENDING, gh_items(2)),
        ]
        result = await build_pipeline(sqlite_store, sources=sources).run()

        assert result.succeeded
        assert [i.title for i in result.items] == ["GH 0", "GH 1"]

    async def test_unavailable_extraction_skips_summary_and_audio(self, sqlite_store):
        items = hn_items()
        extractor = FakeExtractor(unavailable=(items[0].url,))
        summarizer = FakeSummarizer()
        sources = [FakeSource(Source.HACKER_NEWS, items)]

        result = await build_pipeline(
            sqlite_store, sources=sources, extractor=extractor, summarizer=summarizer,
        ).run()

        first, second = result.items
        assert first.summary is None
        assert first.audio_url is None
        assert summarizer.calls == ["HN 1"]
        assert second.has_summary
        assert result.item_count == 2

    async def test_one_summary_fails(self, sqlite_store):
        synth = RecordingSynthesizer()
        items = [make_item(Source.HACKER_NEWS, i, title=title) for i, title in enumerate(("Alpha", "Beta", "Gamma"))]
        summarizer = FakeSummarizer(unavailable=("Beta",))

        result = await build_pipeline(
            sqlite_store,
            sources=[FakeSource(Source.HACKER_NEWS, items)],
            summarizer=summarizer,
            synthesizer=synth,
        ).run()

        alpha, beta, gamma = result.items
        assert beta.summary is None and beta.audio_url is None
        assert alpha.has_summary and alpha.audio_url
        assert gamma.has_summary and gamma.audio_url

        combined_requests = [r for r in synth.requests if r.startswith("Story ")]
        assert combined_requests == ["Story 1: Alpha.", "Story 2: Gamma."]
        assert result.combined_audio_url is not None

    async def test_all_summaries_unavailable(self, sqlite_store):
        synth = RecordingSynthesizer()
        summarizer = FakeSummarizer(unavailable=("HN 0", "HN 1", "GH 0"))
        mailer = FakeMailer()

        result = await build_pipeline(
            sqlite_store, summarizer=summarizer, synthesizer=synth, mailer=mailer,
        ).run()

        assert result.succeeded
        assert result.item_count == 3
        assert not any(i.has_summary for i in result.items)
        assert synth.requests == []
        assert result.combined_audio_url is None
        assert result.warnings == []
        assert "Listen to today's digest" not in mailer.sent[0]["html"]

    async def test_zero_audio_buffers_abandons_combined_track(self, sqlite_store):
        mailer = FakeMailer()
        result = await build_pipeline(
            sqlite_store, synthesizer=RecordingSynthesizer(silent=True), mailer=mailer,
        ).run()

        assert result.succeeded
        assert result.combined_audio_url is None
        assert WARN_NO_COMBINED_AUDIO in result.warnings
        assert all(i.has_summary for i in result.items)
        assert all(i.audio_url is None for i in result.items)
        assert result.email_sent is True
        assert "Listen to today's digest" not in mailer.sent[0]["html"]
        record = await sqlite_store.get_digest(RUN_DATE)
        assert record.combined_audio_url is None
        assert record.email_sent is True

    async def test_combined_upload_failure_is_a_warning(self, sqlite_store):
        objects = FakeObjectStore(fail_on=("daily-digest",))
        result = await build_pipeline(sqlite_store, object_store=objects).run()

        assert result.succeeded
        assert result.combined_audio_url is None
        assert WARN_COMBINED_UPLOAD in result.warnings
        assert all(i.audio_url for i in result.items)
        assert result.email_sent is True
        record = await sqlite_store.get_digest(RUN_DATE)
        assert record.combined_audio_url is None
        assert len(await sqlite_store.items_for_date(RUN_DATE)) == 3

    async def test_item_upload_failure_keeps_summary(self, sqlite_store):
        objects = FakeObjectStore(fail_on=("hacker-news-",))
        result = await build_pipeline(sqlite_store, object_store=objects).run()

        hn = [i for i in result.items if i.source == Source.HACKER_NEWS]
        assert all(i.has_summary and i.audio_url is None for i in hn)
        assert result.combined_audio_url is not None

    async def test_mail_failure_leaves_email_sent_false(self, sqlite_store):
        result = await build_pipeline(sqlite_store, mailer=FakeMailer(fail=True)).run()

        assert result.succeeded
        assert result.email_sent is False
        record = await sqlite_store.get_digest(RUN_DATE)
        assert record.email_sent is False
        assert len(await sqlite_store.items_for_date(RUN_DATE)) == 3

    async def test_render_failure_is_an_email_failure(self, sqlite_store):
        mailer = FakeMailer()
        pipeline = build_pipeline(sqlite_store, mailer=mailer)

        def explode(*args, **kwargs):
            raise RuntimeError("template missing")

        pipeline.clients.renderer.render = explode
        result = await pipeline.run()

        assert result.succeeded
        assert result.stage == RunStage.DONE
        assert result.email_sent is False
        assert mailer.sent == []
        record = await sqlite_store.get_digest(RUN_DATE)
        assert record.total_items == 3
        assert record.email_sent is False

    async def test_no_mailer_configured(self, sqlite_store):
        pipeline = build_pipeline(sqlite_store)
        pipeline.clients.mailer = None

        result = await pipeline.run()
        assert result.succeeded
        assert result.email_sent is False

    async def test_audio_disabled(self, sqlite_store):
        result = await build_pipeline(sqlite_store, audio=False).run()

        assert result.succeeded
        assert result.combined_audio_url is None
        assert all(i.has_summary and i.audio_url is None for i in result.items)

    async def test_persistence_failure_does_not_block_email(self, sqlite_store):
        async def broken(*args, **kwargs):
            raise RuntimeError("table missing")

        sqlite_store.put_items = broken
        sqlite_store.put_digest = broken
        mailer = FakeMailer()

        result = await build_pipeline(sqlite_store, mailer=mailer).run()

        assert result.succeeded
        assert result.email_sent is True
        assert len(mailer.sent) == 1

    async def test_no_items(self, sqlite_store):
        mailer = FakeMailer()
        result = await build_pipeline(sqlite_store, sources=[], mailer=mailer).run()

        assert result.succeeded
        assert result.item_count == 0
        assert "No stories today." in mailer.sent[0]["html"]
        assert (await sqlite_store.get_digest(RUN_DATE)).total_items == 0


class TestFailedRun:
    async def test_unexpected_error_marks_run_failed(self, sqlite_store):
        pipeline = build_pipeline(sqlite_store)

        async def explode(*args, **kwargs):
            raise RuntimeError("fetch stage exploded")

        pipeline.fetch_all = explode
        result = await pipeline.run()

        assert result.stage == RunStage.FAILED
        assert not result.succeeded
        assert result.error == "fetch stage exploded"
        assert result.to_dict()["status"] == "failed"
