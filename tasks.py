from invoke import Collection

from w3gallery.cli import posts

ns = Collection.from_module(posts)
