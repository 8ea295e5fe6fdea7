"""Tests for gitignore-style rules."""
from claude_folder_uploader.ignore import IgnoreFilter, IgnoreRule


def build(*lines):
    return IgnoreFilter.from_lines(lines)


def test_glob_matches_at_any_depth():
    rules = build('*.tmp')

    assert rules.is_ignored('a.tmp')
    assert rules.is_ignored('sub/deeper/b.tmp')
    assert not rules.is_ignored('a.tmpx')
    assert not rules.is_ignored('a.txt')


def test_last_matching_rule_wins():
    rules = build('*.log', '!keep.log')

    assert rules.is_ignored('debug.log')
    assert not rules.is_ignored('keep.log')
    assert not rules.is_ignored('sub/keep.log')

    assert build('!a.txt', 'a.txt').is_ignored('a.txt')


def test_directory_only_rules():
    rules = build('build/')

    assert rules.is_ignored('build', is_dir=True)
    assert not rules.is_ignored('build')
    assert rules.is_ignored('build/out.txt')
    assert rules.is_ignored('src/build/out.txt')


def test_slash_anchors_to_root():
    assert build('/root.txt').is_ignored('root.txt')
    assert not build('/root.txt').is_ignored('sub/root.txt')

    rules = build('docs/*.md')
    assert rules.is_ignored('docs/a.md')
    assert not rules.is_ignored('x/docs/a.md')
    assert not rules.is_ignored('docs/sub/a.md')


def test_double_star():
    assert build('**/cache').is_ignored('a/b/cache', is_dir=True)
    assert build('**/cache').is_ignored('cache')

    rules = build('a/**/z.txt')
    assert rules.is_ignored('a/z.txt')
    assert rules.is_ignored('a/b/c/z.txt')
    assert not rules.is_ignored('b/z.txt')

    rules = build('logs/**')
    assert rules.is_ignored('logs/x.txt')
    assert rules.is_ignored('logs/a/b.txt')
    assert not rules.is_ignored('logs', is_dir=True)


def test_negation_cannot_reinclude_inside_excluded_directory():
    rules = build('secret/', '!secret/ok.txt')

    assert rules.is_ignored('secret/ok.txt')


def test_character_classes():
    assert build('file[0-9].txt').is_ignored('file1.txt')
    assert not build('file[0-9].txt').is_ignored('filea.txt')
    assert build('[!a]*.py').is_ignored('b.py')
    assert not build('[!a]*.py').is_ignored('a.py')


def test_comments_blanks_and_escapes():
    assert IgnoreRule.parse('# comment') is None
    assert IgnoreRule.parse('   ') is None
    assert IgnoreRule.parse('/') is None

    rules = build('# comment', '', r'\#hash', r'\!bang')
    assert rules.is_ignored('#hash')
    assert rules.is_ignored('!bang')
    assert not rules.is_ignored('comment')


def test_filter_is_callable():
    rules = build('*.tmp')
    assert rules('x.tmp') is True
    assert rules('x.txt') is False


def test_from_folder_without_ignore_file_uses_defaults(tmp_path):
    rules = IgnoreFilter.from_folder(str(tmp_path))

    assert rules.is_ignored('node_modules', is_dir=True)
    assert rules.is_ignored('node_modules/react/index.js')
    assert rules.is_ignored('.env')
    assert rules.is_ignored('.env.local')
    assert rules.is_ignored('package-lock.json')
    assert rules.is_ignored('.claude_uploader.manifest')
    assert not rules.is_ignored('src/app.py')

    assert not IgnoreFilter.from_folder(str(tmp_path), defaults=()).rules


def test_from_folder_reads_gitignore_after_defaults(tmp_path):
    (tmp_path / '.gitignore').write_text('*.tmp\n!.env\n', encoding='utf-8')
    rules = IgnoreFilter.from_folder(str(tmp_path))

    assert rules.is_ignored('scratch.tmp')
    assert not rules.is_ignored('.env')


def test_from_folder_with_custom_filename(tmp_path):
    (tmp_path / '.claudeignore').write_text('drafts/\n', encoding='utf-8')
    rules = IgnoreFilter.from_folder(str(tmp_path), filename='.claudeignore')

    assert rules.is_ignored('drafts', is_dir=True)


def test_unreadable_ignore_file_means_no_rules(tmp_path, capsys):
    (tmp_path / '.gitignore').mkdir()
    rules = IgnoreFilter.from_folder(str(tmp_path), defaults=())

    assert rules.rules == ()
    assert 'Could not read .gitignore' in capsys.readouterr().err
