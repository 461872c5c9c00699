#!/usr/bin/env python3
"""
Job Alert - Manual pipeline trigger and skills embedding helper

Main entry point. Wires configuration, the preference store, the
embedding client and the pipeline trigger together for the CLI.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import httpx

from jobalert.config import Config, load_config, generate_example_config, resolve_config_path
from jobalert.database import Database
from jobalert.embeddings import (
    EmbeddingClient,
    EmbeddingVector,
    SkillsEmbedder,
    SkillsEmbeddingCache,
    cosine_similarity,
)
from jobalert.errors import JobAlertError
from jobalert.trigger import PipelineTrigger, TriggerResult


# Configure logging
def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )

    # Reduce noise from external libraries
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


class JobAlertApp:
    """
    Composition root for Job Alert.

    Owns the long-lived collaborators, including the skills embedding cache,
    so nothing is shared through module state.
    """

    def __init__(self, config: Config):
        """
        Initialize the application.

        Args:
            config: Application configuration.
        """
        self.config = config

        self.db = Database(config.database.db_path)
        self.embedding_client = EmbeddingClient(config.embedding)
        self.skills_cache = SkillsEmbeddingCache()
        self.skills_embedder = SkillsEmbedder(self.embedding_client, self.db, self.skills_cache)
        self.trigger = PipelineTrigger(config.pipeline)

    async def run_pipeline(self) -> TriggerResult:
        """Trigger the pipeline once, showing a busy message while it runs."""
        print("Running pipeline...")
        print("This may take 2-5 minutes. Please wait...")
        return await self.trigger.run()

    async def embed(self, text: str) -> EmbeddingVector:
        return await self.embedding_client.fetch_embedding(text)

    async def skills_embedding(self, user_id: str) -> EmbeddingVector:
        return await self.skills_embedder.get_user_skills_embedding(user_id)

    def set_skills(self, user_id: str, skills: list[str]) -> None:
        """Store a user's skills and drop any embedding built from the old list."""
        self.db.set_skills(user_id, skills)
        self.skills_embedder.reset()

    async def match(self, text: str, user_id: str) -> float:
        """Score how closely a piece of text matches the user's skills."""
        skills = await self.skills_embedding(user_id)
        target = await self.embed(text)
        return cosine_similarity(skills, target)

    async def close(self) -> None:
        await self.embedding_client.close()
        await self.trigger.close()


def format_vector(vector: EmbeddingVector, preview: int = 5) -> str:
    head = ", ".join(f"{v:.4f}" for v in vector[:preview])
    return f"[{head}, ...] ({len(vector)} dimensions)"


def parse_skills(raw: str) -> list[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Job Alert - Manual pipeline trigger and skills embedding helper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --trigger                          Run the job pipeline now
  %(prog)s --set-skills "Python, Django, AWS" Store skills for the default user
  %(prog)s --skills-embedding                 Show the skills embedding
  %(prog)s --match "Senior Django developer"  Score text against your skills
  %(prog)s --embed "some text"                Embed arbitrary text
  %(prog)s --init-config                      Generate example config file
        """
    )

    parser.add_argument(
        '-c', '--config',
        default=None,
        help='Path to configuration file (default: $JOBALERT_CONFIG or config.yaml)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--log-file',
        help='Write logs to file'
    )

    parser.add_argument(
        '--user-id',
        help='Preference record to use (default: user.default_user_id from config)'
    )

    mode = parser.add_mutually_exclusive_group()

    mode.add_argument(
        '--trigger',
        action='store_true',
        help='Run the scrape + score + notify pipeline now'
    )

    mode.add_argument(
        '--embed',
        metavar='TEXT',
        help='Generate an embedding for TEXT'
    )

    mode.add_argument(
        '--skills-embedding',
        action='store_true',
        help="Generate (or reuse) the embedding of the user's skills"
    )

    mode.add_argument(
        '--set-skills',
        metavar='SKILLS',
        help='Store a comma-separated skills list for the user'
    )

    mode.add_argument(
        '--match',
        metavar='TEXT',
        help="Cosine similarity between TEXT and the user's skills"
    )

    mode.add_argument(
        '--init-config',
        action='store_true',
        help='Generate example configuration file'
    )

    args = parser.parse_args()

    # Set up logging
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    # Handle init-config separately
    if args.init_config:
        generate_example_config()
        return

    # Load configuration
    config_path = resolve_config_path(args.config)
    try:
        config = load_config(config_path)
        logger.info(f"Loaded configuration from: {config_path}")
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    user_id = args.user_id or config.user.default_user_id
    app = JobAlertApp(config)

    try:
        if args.trigger:
            result = await app.run_pipeline()
            print(result.message)
            if not result.success:
                sys.exit(1)

        elif args.embed is not None:
            if not args.embed.strip():
                logger.error("No text given to embed")
                sys.exit(1)
            vector = await app.embed(args.embed)
            print(format_vector(vector))

        elif args.skills_embedding:
            vector = await app.skills_embedding(user_id)
            print(format_vector(vector))

        elif args.set_skills is not None:
            skills = parse_skills(args.set_skills)
            if not skills:
                logger.error("No skills given")
                sys.exit(1)
            app.set_skills(user_id, skills)
            print(f"Stored {len(skills)} skills for '{user_id}': {', '.join(skills)}")

        elif args.match is not None:
            if not args.match.strip():
                logger.error("No text given to match")
                sys.exit(1)
            score = await app.match(args.match, user_id)
            print(f"Similarity to skills of '{user_id}': {score:.4f}")

        else:
            parser.print_help()

    except JobAlertError as e:
        logger.error(str(e))
        sys.exit(1)

    except httpx.TransportError as e:
        logger.error(f"Network error: {e}")
        sys.exit(1)

    finally:
        await app.close()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
