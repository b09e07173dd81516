"""Allow ``python -m diffwatch``."""

from diffwatch._cli import main

main()
