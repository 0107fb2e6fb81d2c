"""
Unit tests for source crawlers and the sub-crawler runner.
"""
import pytest
from pathlib import Path
from unittest.mock import Mock

from repocrawler.errors import ConfigurationError
from repocrawler.source_crawlers import (
    LanguageStatsCrawler,
    SUB_CRAWLERS,
    SubCrawler,
    SubCrawlerRunner,
    build_sub_crawlers,
)

from conftest import make_repo, requires_git


class TestLanguageStatsCrawler:
    """Test language detection."""

    def test_classify_language(self):
        """Should classify by extension and special names."""
        crawler = LanguageStatsCrawler()

        assert crawler.classify_language(Path('rtl/core.v')) == 'verilog'
        assert crawler.classify_language(Path('bench/tb.SV')) == 'systemverilog'
        assert crawler.classify_language(Path('Makefile')) == 'makefile'
        assert crawler.classify_language(Path('notes.xyz')) is None

    def test_should_exclude(self):
        """Should skip VCS metadata, dependencies and patterns."""
        crawler = LanguageStatsCrawler()

        assert crawler.should_exclude(Path('.git/config'))
        assert crawler.should_exclude(Path('web/node_modules/lib.js'))
        assert crawler.should_exclude(Path('sim/__pycache__/run.pyc'))
        assert not crawler.should_exclude(Path('sim/run.py'))

    def test_crawl_counts_files_and_lines(self, tmp_path):
        """Should record per-language file and line counts on the repo."""
        (tmp_path / 'rtl').mkdir()
        (tmp_path / 'rtl' / 'core.v').write_text('module core;\nendmodule\n')
        (tmp_path / 'rtl' / 'alu.v').write_text('module alu;\nwire a;\nendmodule')
        (tmp_path / 'sim').mkdir()
        (tmp_path / 'sim' / 'run.py').write_text('print("hi")\n')
        (tmp_path / '.git').mkdir()
        (tmp_path / '.git' / 'hook.py').write_text('x = 1\n')
        (tmp_path / 'logo.xyz').write_bytes(b'\x89PNG')
        repo = make_repo(local_path=str(tmp_path))

        LanguageStatsCrawler().crawl(repo)

        assert repo.language_stats == {
            'verilog': {'files': 2, 'lines': 5},
            'python': {'files': 1, 'lines': 1},
        }

    def test_binary_file_has_no_lines(self, tmp_path):
        """Should count binary files but not their lines."""
        (tmp_path / 'blob.c').write_bytes(b'\x00\x01\n\x02')
        repo = make_repo(local_path=str(tmp_path))

        LanguageStatsCrawler().crawl(repo)

        assert repo.language_stats == {'c': {'files': 1, 'lines': 0}}

    def test_custom_excludes(self, tmp_path):
        """Should honour configured exclusions."""
        (tmp_path / 'vendor').mkdir()
        (tmp_path / 'vendor' / 'lib.c').write_text('int x;\n')
        (tmp_path / 'main.c').write_text('int main;\n')
        repo = make_repo(local_path=str(tmp_path))

        LanguageStatsCrawler(excludes=['vendor']).crawl(repo)

        assert repo.language_stats == {'c': {'files': 1, 'lines': 1}}

    def test_dangling_symlink_skipped(self, tmp_path):
        """Should skip a symlink whose target does not exist."""
        (tmp_path / 'a.py').write_text('x = 1\n')
        (tmp_path / 'link.py').symlink_to(tmp_path / 'missing.py')
        repo = make_repo(local_path=str(tmp_path))

        LanguageStatsCrawler().crawl(repo)

        assert repo.language_stats == {'python': {'files': 1, 'lines': 1}}

    def test_symlink_outside_working_copy_not_read(self, tmp_path):
        """Should never read files a symlink points to."""
        outside = tmp_path / 'outside'
        outside.mkdir()
        (outside / 'secret.sh').write_text('one\ntwo\nthree\n')
        working = tmp_path / 'repo'
        working.mkdir()
        (working / 'build.sh').write_text('make\n')
        (working / 'x.sh').symlink_to(outside / 'secret.sh')
        repo = make_repo(local_path=str(working))

        LanguageStatsCrawler().crawl(repo)

        assert repo.language_stats == {'shell': {'files': 1, 'lines': 1}}

    @requires_git
    def test_untracked_files_counted(self, working_copy):
        """Should count files in the working tree that are not committed."""
        working_copy.commit({'rtl/core.v': 'module core;\nendmodule\n'}, 'rtl')
        (working_copy.path / 'scratch.v').write_text('wire w;\n')
        repo = make_repo(local_path=str(working_copy.path))

        LanguageStatsCrawler().crawl(repo)

        assert repo.language_stats == {'verilog': {'files': 2, 'lines': 3}}

    def test_no_working_copy(self):
        """Should leave stats untouched without a local path."""
        repo = make_repo(local_path=None, repo_type='svn')
        repo.language_stats = {'vhdl': {'files': 1, 'lines': 9}}

        LanguageStatsCrawler().crawl(repo)

        assert repo.language_stats == {'vhdl': {'files': 1, 'lines': 9}}


class TestSubCrawlerRunner:
    """Test sub-crawler invocation."""

    def test_runs_in_registration_order(self):
        """Should call every crawler with the repo, in order."""
        repo = make_repo()
        calls = []
        first = Mock(spec=SubCrawler)
        first.name = 'first'
        first.crawl.side_effect = lambda r: calls.append(('first', r))
        second = Mock(spec=SubCrawler)
        second.name = 'second'
        second.crawl.side_effect = lambda r: calls.append(('second', r))

        runner = SubCrawlerRunner(repo, [first])
        runner.register(second)
        runner.run_crawlers()

        assert calls == [('first', repo), ('second', repo)]

    def test_empty_runner_is_noop(self):
        """Should do nothing without crawlers."""
        SubCrawlerRunner(make_repo()).run_crawlers()

    def test_crawler_errors_propagate(self):
        """Should not swallow crawler failures."""
        failing = Mock(spec=SubCrawler)
        failing.name = 'failing'
        failing.crawl.side_effect = OSError("unreadable")

        with pytest.raises(OSError):
            SubCrawlerRunner(make_repo(), [failing]).run_crawlers()


class TestBuildSubCrawlers:
    """Test building sub-crawlers from names."""

    def test_build_known(self):
        """Should instantiate registered crawlers."""
        crawlers = build_sub_crawlers(['languages'], excludes=['vendor'])

        assert len(crawlers) == 1
        assert isinstance(crawlers[0], LanguageStatsCrawler)
        assert crawlers[0].exclude_patterns == {'vendor'}

    def test_build_none(self):
        """Should allow an empty list."""
        assert build_sub_crawlers([]) == []

    def test_build_unknown(self):
        """Should reject unknown names."""
        with pytest.raises(ConfigurationError, match="Unknown source crawler 'licenses'"):
            build_sub_crawlers(['licenses'])

    def test_build_uses_from_config(self, monkeypatch):
        """Should build every registered crawler through from_config."""
        class LicenseCrawler(SubCrawler):
            name = 'licenses'

            def crawl(self, repo):
                pass

        monkeypatch.setitem(SUB_CRAWLERS, 'licenses', LicenseCrawler)

        crawlers = build_sub_crawlers(['licenses', 'languages'], excludes=['vendor'])

        assert isinstance(crawlers[0], LicenseCrawler)
        assert crawlers[1].exclude_patterns == {'vendor'}
