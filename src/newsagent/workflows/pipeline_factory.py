"""
Pipeline Factory - builds the client set and pipeline from configuration.
"""
import logging
from typing import Optional

import boto3

from newsagent.audio.assembler import AudioAssembler
from newsagent.audio.synthesizer import PollySynthesizer
from newsagent.delivery.email_delivery import EmailDelivery
from newsagent.delivery.renderer import DigestRenderer
from newsagent.ingestion.source_factory import create_adapters_from_config
from newsagent.processing.extractor import ContentExtractor
from newsagent.processing.summarizer import Summarizer
from newsagent.services.config import Config
from newsagent.services.llm import OllamaClient
from newsagent.storage.database import Database, SqliteRecommendationStore
from newsagent.storage.object_store import FileObjectStore, ObjectStore, S3ObjectStore
from newsagent.storage.recommendations import DynamoRecommendationStore, RecommendationStore
from newsagent.workflows.digest_pipeline import ClientSet, DigestPipeline

logger = logging.getLogger(__name__)


def create_object_store(config: Config, session: Optional[boto3.session.Session] = None) -> ObjectStore:
    settings = config.object_store
    backend = settings.backend.lower()

    if backend == "s3":
        if not settings.bucket:
            raise ValueError("S3 object store requires 'bucket'")
        session = session or boto3.session.Session(region_name=config.AWS_REGION)
        return S3ObjectStore(
            session.client("s3"),
            bucket=settings.bucket,
            region=config.AWS_REGION,
            public_base_url=settings.public_base_url,
            retry=config.retry,
        )

    elif backend == "file":
        return FileObjectStore(settings.output_dir)

    else:
        raise ValueError(f"Unknown object store backend: {backend}")


def create_recommendation_store(
    config: Config,
    session: Optional[boto3.session.Session] = None,
) -> RecommendationStore:
    settings = config.recommendations
    backend = settings.backend.lower()

    if backend == "dynamodb":
        session = session or boto3.session.Session(region_name=config.AWS_REGION)
        return DynamoRecommendationStore(
            session.resource("dynamodb"),
            table_name=settings.table_name,
            batch_size=settings.batch_size,
            retry=config.retry,
        )

    elif backend == "sqlite":
        return SqliteRecommendationStore(Database(settings.sqlite_path), batch_size=settings.batch_size)

    else:
        raise ValueError(f"Unknown recommendations backend: {backend}")


def build_clients(config: Config, session: Optional[boto3.session.Session] = None) -> ClientSet:
    """
    Construct every external client once. Audio and email are optional
    and left out when disabled.
    """
    session = session or boto3.session.Session(region_name=config.AWS_REGION)

    llm = OllamaClient(
        base_url=config.OLLAMA_BASE_URL,
        model=config.OLLAMA_MODEL,
        max_retries=config.LLM_MAX_RETRIES,
        timeout=config.LLM_TIMEOUT,
    )

    assembler = None
    if config.audio.enabled:
        assembler = AudioAssembler(
            PollySynthesizer(
                session.client("polly"),
                voice=config.audio.voice,
                engine=config.audio.engine,
                ceiling=config.audio.ceiling,
                retry=config.retry,
            )
        )

    mailer = None
    if config.email.enabled:
        if not config.email.smtp_host:
            logger.error("Email enabled but smtp_host is not set, email disabled")
        else:
            mailer = EmailDelivery(
                smtp_host=config.email.smtp_host,
                smtp_port=config.email.smtp_port,
                username=config.email.username,
                password=config.email.password,
            )

    return ClientSet(
        sources=create_adapters_from_config(config),
        extractor=ContentExtractor(max_chars=config.EXTRACT_MAX_CHARS, timeout=config.FETCH_TIMEOUT),
        summarizer=Summarizer(llm),
        object_store=create_object_store(config, session),
        store=create_recommendation_store(config, session),
        renderer=DigestRenderer(colors=config.email.colors.model_dump()),
        assembler=assembler,
        mailer=mailer,
    )


def create_pipeline_from_config(config: Config, clients: Optional[ClientSet] = None) -> DigestPipeline:
    clients = clients or build_clients(config)
    logger.info(
        f"Created pipeline: {len(clients.sources)} sources, "
        f"audio={'on' if clients.assembler else 'off'}, email={'on' if clients.mailer else 'off'}"
    )
    return DigestPipeline(
        clients,
        recipient=config.email.recipient,
        sender=config.email.sender,
        retention_days=config.recommendations.retention_days,
    )
