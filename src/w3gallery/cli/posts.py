"""
Terminal administration of gallery posts.

Run through invoke, e.g. ``invoke init-gallery --name "Ada"`` once for a new
bucket, then ``invoke create-post --photo cat.jpg --caption "A cat"``.
Storage credentials come from ``GALLERY_ACCESS_KEY`` and ``GALLERY_SECRET_KEY``
(or ``GALLERY_SECRET_FILE`` holding the private key).
"""

import asyncio
import os
from pathlib import Path

from dotenv import load_dotenv
from invoke import Context, task

from w3gallery.config import get_env, get_public_endpoint
from w3gallery.logging_config import configure_structured_logging, get_logger
from w3gallery.models.post import PhotoUpload
from w3gallery.services.gallery import GalleryManager
from w3gallery.services.storage import create_storage_client

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tiff"]


def load_environment(env_file: str) -> None:
    if os.path.exists(env_file):
        logger.info("environment_loaded", env_file=env_file)
        load_dotenv(dotenv_path=env_file)
    else:
        logger.warning("environment_file_missing", env_file=env_file)
    configure_structured_logging()


def read_secret() -> str | None:
    secret = get_env("GALLERY_SECRET_KEY")
    if secret:
        return str(secret)
    secret_file = get_env("GALLERY_SECRET_FILE")
    if secret_file:
        return Path(secret_file).read_text(encoding="utf-8")
    return None


def read_credentials() -> tuple[str, str]:
    key = get_env("GALLERY_ACCESS_KEY")
    secret = read_secret()
    if not key or not secret:
        raise SystemExit("GALLERY_ACCESS_KEY and GALLERY_SECRET_KEY (or GALLERY_SECRET_FILE) must be set")
    return str(key), secret


async def open_gallery(login: bool) -> GalleryManager:
    """Create a manager, logging in when credentials are required."""
    manager = GalleryManager(create_storage_client(), get_public_endpoint())
    await manager.ready()

    if login:
        key, secret = read_credentials()
        await manager.login(key, secret, await manager.display_name(), manager.profile_url)
    return manager


def read_photo(path: str) -> PhotoUpload:
    photo_path = Path(path)
    if not photo_path.is_file():
        raise SystemExit(f"Photo not found: {path}")
    return PhotoUpload(data=photo_path.read_bytes(), filename=photo_path.name)


@task
def init_gallery(c: Context, name: str = "", env_file: str = ".env"):
    """
    Write the initial metadata document to a new bucket.

    Logging in probes ``metadata.json``, so run this once before the first post.
    A bucket that already has the document is left as it is.

    Args:
        c (Context): Invoke context.
        name (str): Gallery owner name shown as the title. Default is empty.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    load_environment(env_file)
    key, secret = read_credentials()

    async def run():
        manager = GalleryManager(create_storage_client(), get_public_endpoint())
        return await manager.bootstrap(key, secret, name or None)

    if asyncio.run(run()):
        print("Gallery initialized")
    else:
        print("Gallery already initialized")


@task
def list_posts(c: Context, page_size: int = 100, start_index: int = 0, env_file: str = ".env"):
    """
    Print the post indices of one listing page.

    Args:
        c (Context): Invoke context.
        page_size (int): Maximum number of indices. Default is 100.
        start_index (int): List posts after this index. Default is 0.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    load_environment(env_file)

    async def run():
        manager = await open_gallery(login=False)
        return manager.metadata, await manager.list(page_size, start_index)

    metadata, page = asyncio.run(run())
    print(f"latestIndex: {metadata.latest_index}")
    for index in sorted(page.indices):
        print(f"- posts/{index}/")
    if page.is_truncated:
        print(f"(more posts after {page.next_marker})")


@task
def create_post(c: Context, photo: str, caption: str = "", env_file: str = ".env"):
    """
    Upload a photo and caption as a new post.

    Args:
        c (Context): Invoke context.
        photo (str): Path to the photo file.
        caption (str): Caption text. Default is empty.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    load_environment(env_file)
    upload = read_photo(photo)

    async def run():
        manager = await open_gallery(login=True)
        return await manager.create(upload, caption)

    index = asyncio.run(run())
    print(f"Created post {index}")


@task
def batch_create(c: Context, directory: str, caption_from_filename: bool = True, env_file: str = ".env", dry_run: bool = False):
    """
    Create one post per image in a directory, in filename order.

    Args:
        c (Context): Invoke context.
        directory (str): Directory containing images.
        caption_from_filename (bool): Use the file stem as caption. Default is True.
        env_file (str): Path to the environment file. Default is '.env'.
        dry_run (bool): List the files without uploading. Default is False.
    """
    load_environment(env_file)

    if not os.path.isdir(directory):
        raise SystemExit(f"Directory not found: {directory}")

    image_files = sorted(
        path for path in Path(directory).iterdir() if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS
    )
    if not image_files:
        logger.warning("no_images_found", directory=directory)
        return

    if dry_run:
        for path in image_files:
            print(f"- {path}")
        return

    async def run():
        manager = await open_gallery(login=True)
        created = []
        # Sequential: each create commits the counter the next one builds on
        for path in image_files:
            caption = path.stem if caption_from_filename else ""
            created.append(await manager.create(read_photo(str(path)), caption))
        return created

    created = asyncio.run(run())
    logger.info("batch_create_completed", directory=directory, created=len(created))
    print(f"Created posts {', '.join(str(index) for index in created)}")


@task
def update_post(c: Context, index: int, photo: str = "", caption: str | None = None, env_file: str = ".env"):
    """
    Replace the photo and/or caption of a post.

    Args:
        c (Context): Invoke context.
        index (int): Post index.
        photo (str): Path to a new photo. Default keeps the current photo.
        caption (str): New caption. Default keeps the current caption.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    load_environment(env_file)
    upload = read_photo(photo) if photo else None

    async def run():
        manager = await open_gallery(login=True)
        await manager.update(int(index), photo=upload, caption=caption)

    asyncio.run(run())
    print(f"Updated post {index}")


@task
def delete_post(c: Context, index: int, env_file: str = ".env"):
    """
    Delete every object of a post.

    Args:
        c (Context): Invoke context.
        index (int): Post index.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    load_environment(env_file)

    async def run():
        manager = await open_gallery(login=True)
        return await manager.delete(int(index))

    deleted = asyncio.run(run())
    print(f"Deleted {deleted} object(s) of post {index}")
