"""
Usage:
    python -m repocrawler sync path/to/target.yaml
"""
from repocrawler.cli import main

if __name__ == '__main__':
    main()
