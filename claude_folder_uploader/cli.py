import click
import os
import sys
import threading
from datetime import datetime
from tqdm import tqdm
from .config import ConfigManager
from .curl import parse_curl
from .errors import FolderAccessError, ParseError, SessionError, UploaderError
from .files import FileEnumerator, check_folder, format_file_size
from .ignore import IgnoreFilter
from .keep import KeepConfig
from .manifest import UploadManifest
from .models import Outcome
from .session import MAX_WORKERS, Uploader

# ASCII Art Banner
BANNER = """
╔═══════════════════════════════════════════╗
║     Claude.ai Folder Uploader v0.1.0      ║
║  Upload a folder to your Claude project 🚀 ║
╚═══════════════════════════════════════════╝
"""

BAR_FORMAT = '{l_bar}{bar:30}{r_bar}{bar:-10b}'

AUTH_HELP = """
Claude.ai rejected the copied session, it has probably expired. To fix it:
  1. Open https://claude.ai in your browser
  2. Open Developer Tools (F12 or right-click → Inspect)
  3. Go to the Network tab
  4. Upload any file manually to your project
  5. Find the upload request (filter for 'docs')
  6. Right-click the request and select 'Copy as cURL'
  7. Save it to a file and run 'claude-folder-uploader init -C <file>'
Note: Claude.ai sessions expire regularly, repeat this whenever that happens.
"""

OUTCOME_STYLE = {
    Outcome.SUCCESS: ('✅', 'green'),
    Outcome.SKIPPED: ('⏩', 'bright_black'),
    Outcome.FAILED: ('❌', 'red'),
}


def print_banner():
    """Print the application banner"""
    click.echo(click.style(BANNER, fg='cyan', bold=True))


def print_auth_help():
    click.echo(click.style(AUTH_HELP, fg='yellow'))


def format_result(result):
    icon, color = OUTCOME_STYLE[result.outcome]
    line = f"{icon} {result.file.relative_path}"
    if result.detail:
        line += f" - {result.detail}"
    return click.style(line, fg=color)


def time_ago(timestamp):
    sync_time = datetime.fromisoformat(timestamp)
    delta = datetime.now(sync_time.tzinfo) - sync_time

    if delta.days > 0:
        text = f"{delta.days} days ago"
    elif delta.seconds > 3600:
        text = f"{delta.seconds // 3600} hours ago"
    elif delta.seconds > 60:
        text = f"{delta.seconds // 60} minutes ago"
    else:
        text = "just now"
    return f"{sync_time.strftime('%Y-%m-%d %H:%M:%S')} ({text})"


def load_curl_text(curl_file, config):
    if curl_file is not None:
        return curl_file.read()
    curl_text = config.load_curl()
    if curl_text is None:
        click.echo(click.style("❌ No curl command found. Run 'claude-folder-uploader init -C <file>' first "
                               "or pass --curl-file.", fg='red'))
        sys.exit(1)
    return curl_text


def upload_options(func):
    """Options shared by 'upload' and 'reupload'."""
    options = [
        click.option('-D', '--directory-path', default=os.getcwd, type=click.Path(file_okay=False),
                     help='Folder to upload. Defaults to the current directory.'),
        click.option('-C', '--curl-file', type=click.File('r'),
                     help='File holding the copied curl command ("-" for stdin). Defaults to the one saved by init.'),
        click.option('-w', '--workers', type=click.IntRange(1, MAX_WORKERS),
                     help=f'Concurrent uploads (1-{MAX_WORKERS}).'),
        click.option('-t', '--timeout', type=click.FloatRange(min=1), help='Per-request timeout in seconds.'),
        click.option('-s', '--section', 'sections', multiple=True,
                     help='Only upload files of this .claudekeep section. Repeatable.'),
        click.option('--probe', is_flag=True, help='Check the copied session with a small test upload first.'),
        click.option('-y', '--yes', is_flag=True, help='Skip confirmation prompts.'),
        click.option('--details', is_flag=True, help='List every file with its outcome after the upload.'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('-q', '--quiet', is_flag=True, help='Minimal output')
@click.pass_context
def main(ctx, verbose, quiet):
    """Claude Folder Uploader: upload a whole folder to a Claude.ai project"""
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose
    ctx.obj['QUIET'] = quiet

    if not quiet:
        print_banner()


@main.command()
@click.option('-C', '--curl-file', required=True, type=click.File('r'),
              help='File holding the curl command copied from Claude.ai ("-" for stdin).')
@click.option('-w', '--workers', type=click.IntRange(1, MAX_WORKERS), help='Default number of concurrent uploads.')
@click.option('-t', '--timeout', type=click.FloatRange(min=1), help='Default per-request timeout in seconds.')
@click.option('-i', '--ignore-file', help='Name of the ignore file read from the folder root.')
@click.pass_context
def init(ctx, curl_file, workers, timeout, ignore_file):
    """🔧 Save the copied curl command and default settings."""
    if not ctx.obj['QUIET']:
        click.echo(click.style("\n🔧 Initializing Claude Folder Uploader...", fg='cyan', bold=True))

    curl_text = curl_file.read()
    try:
        template = parse_curl(curl_text)
    except ParseError as e:
        click.echo(click.style(f"❌ Error parsing curl command: {e}", fg='red'))
        sys.exit(1)

    config = ConfigManager()
    config.save_curl(curl_text)
    click.echo(click.style("✅ Curl command saved", fg='green'))
    settings = config.save_config(workers=workers, timeout=timeout, ignore_file=ignore_file)
    click.echo(click.style("✅ Settings saved", fg='green'))

    if not ctx.obj['QUIET']:
        click.echo(f"   🎯 Target: {template.method} {template.target_url}")
        if template.project_id:
            click.echo(f"   🆔 Project: {template.project_id}")
        click.echo(f"   ⚙️  Workers: {settings['workers']}, timeout: {settings['timeout']}s, "
                   f"ignore file: {settings['ignore_file']}")

    click.echo(click.style("\n🎉 Initialization complete! You can now run 'claude-folder-uploader upload'",
                           fg='green', bold=True))


@main.command()
@upload_options
@click.pass_context
def upload(ctx, **options):
    """📤 Upload every supported file in a folder to the Claude project."""
    run_upload(ctx, replace=False, **options)


@main.command()
@upload_options
@click.pass_context
def reupload(ctx, **options):
    """🔄 Delete the files uploaded last time, then upload the folder again."""
    run_upload(ctx, replace=True, **options)


def run_upload(ctx, directory_path, curl_file, workers, timeout, sections, probe, yes, details, replace):
    quiet = ctx.obj['QUIET']
    config = ConfigManager()
    settings = config.load_config()
    curl_text = load_curl_text(curl_file, config)

    uploader = Uploader()
    try:
        session = uploader.prepare(
            curl_text,
            directory_path,
            ignore_file=settings['ignore_file'],
            sections=sections,
            workers=workers or settings['workers'],
            timeout=timeout or settings['timeout'],
        )
    except ParseError as e:
        click.echo(click.style(f"❌ Error parsing curl command: {e}", fg='red'))
        sys.exit(1)
    except (FolderAccessError, SessionError) as e:
        click.echo(click.style(f"❌ {e}", fg='red'))
        sys.exit(1)

    try:
        template = session.template
        entries = list(session.enumerator.entries())
        candidates = [candidate for candidate, reason in entries if reason is None]
        total_size = sum(candidate.size_bytes for candidate in candidates)

        if ctx.obj['VERBOSE']:
            click.echo(click.style("\n📨 Request template:", fg='cyan'))
            click.echo(f"   {template.method} {template.target_url} ({template.body_kind})")
            for name, value in template.redacted_headers():
                click.echo(f"   {name}: {value}")

        if not quiet:
            click.echo(click.style(f"\n📊 Folder Statistics:", fg='yellow'))
            click.echo(f"   📁 Files to upload: {len(candidates)}")
            click.echo(f"   ⏩ Files skipped: {len(entries) - len(candidates)}")
            click.echo(f"   💾 Total size: {format_file_size(total_size)}")
            if template.project_id:
                click.echo(f"   🆔 Project: {template.project_id}")

            if not yes and not click.confirm(click.style("\n❓ Do you want to proceed?", fg='yellow')):
                click.echo(click.style("❌ Operation cancelled.", fg='red'))
                return

        manifest = UploadManifest(session.root)
        if replace:
            delete_previous(session.client, manifest, quiet)

        if probe and candidates:
            if not quiet:
                click.echo(click.style(f"\n🔑 Testing connection with {candidates[0].name}...", fg='cyan'))
            try:
                session.client.probe(candidates[0])
            except UploaderError as e:
                click.echo(click.style(f"❌ Authentication test failed: {e}", fg='red'))
                if getattr(e, 'auth_failure', False):
                    print_auth_help()
                sys.exit(1)
            if not quiet:
                click.echo(click.style("✅ Session accepted", fg='green'))

        if not quiet:
            click.echo(click.style(f"\n📤 Uploading {len(candidates)} files...", fg='cyan'))
        run_with_progress(session, len(entries), quiet)

        manifest.record(session.results)
        manifest.save_manifest()

        progress = session.progress
        results = session.results
        # failures were already written next to the progress bar
        if details and results:
            click.echo(click.style("\n📋 Details:", fg='cyan'))
            for result in results:
                click.echo(f"   {format_result(result)}")

        if session.cancelled:
            click.echo(click.style(f"\n⚠️  Upload cancelled. {progress.summary()}", fg='yellow'))
        elif progress.failed:
            click.echo(click.style(f"\n❌ Upload finished with failures. {progress.summary()}", fg='red'))
        else:
            click.echo(click.style(f"\n🎉 Upload complete! {progress.summary()}", fg='green', bold=True))

        if any(result.auth_failure for result in results):
            print_auth_help()
        if progress.failed:
            sys.exit(1)

    except UploaderError as e:
        click.echo(click.style(f"❌ Failed to upload folder: {e}", fg='red'))
        if ctx.obj['VERBOSE']:
            import traceback
            traceback.print_exc()
        sys.exit(1)


def run_with_progress(session, total, quiet):
    """Run the session on a worker thread so Ctrl-C can cancel it cooperatively."""
    errors = []

    with tqdm(total=total, desc="Uploading", unit="file", bar_format=BAR_FORMAT, disable=quiet) as pbar:
        def on_dispatch(candidate):
            pbar.set_description(f"Uploading {candidate.relative_path[:40]}...")

        def on_result(result):
            if result.outcome is Outcome.FAILED:
                pbar.write(click.style(f"❌ Failed to upload {result.file.relative_path}: {result.detail}", fg='red'))
            pbar.update(1)

        session.on_dispatch = on_dispatch
        session.on_result = on_result

        def target():
            try:
                session.run()
            except Exception as e:
                errors.append(e)

        worker = threading.Thread(target=target, daemon=True)
        worker.start()
        try:
            while worker.is_alive():
                worker.join(0.2)
        except KeyboardInterrupt:
            pbar.write(click.style("\n⚠️  Cancelling, waiting for uploads in flight...", fg='yellow'))
            session.cancel()
            worker.join()

    if errors:
        raise errors[0]


def delete_previous(client, manifest, quiet):
    files = manifest.files
    if not files:
        click.echo(click.style("\n⚠️  No previously uploaded files recorded, nothing to delete.", fg='yellow'))
        return
    if not client.template.supports_delete:
        click.echo(click.style("\n⚠️  The copied endpoint does not support deleting files, skipping.", fg='yellow'))
        return

    if not quiet:
        click.echo(click.style(f"\n🗑️  Deleting {len(files)} existing files...", fg='yellow'))

    with tqdm(total=len(files), desc="Deleting", unit="file", bar_format=BAR_FORMAT, disable=quiet) as pbar:
        for relative_path, entry in list(files.items()):
            pbar.set_description(f"Deleting {relative_path[:40]}...")
            try:
                client.delete(entry['uuid'])
                manifest.forget(relative_path)
            except UploaderError as e:
                if getattr(e, 'status_code', None) == 404:
                    manifest.forget(relative_path)
                else:
                    pbar.write(click.style(f"❌ Failed to delete {relative_path}: {e}", fg='red'))
            pbar.update(1)

    manifest.save_manifest()


@main.command()
@click.option('-D', '--directory-path', default=os.getcwd, type=click.Path(file_okay=False),
              help='Folder to inspect. Defaults to the current directory.')
@click.option('-s', '--section', 'sections', multiple=True, help='Restrict to a .claudekeep section. Repeatable.')
@click.option('--detailed', is_flag=True, help='Show detailed file lists.')
@click.pass_context
def status(ctx, directory_path, sections, detailed):
    """📊 Show what the next upload would send and skip."""
    settings = ConfigManager().load_config()
    try:
        check_folder(directory_path)
    except FolderAccessError as e:
        click.echo(click.style(f"❌ {e}", fg='red'))
        sys.exit(1)

    keep = KeepConfig.from_folder(directory_path)
    if sections and keep is None:
        click.echo(click.style("❌ Sections were selected but the folder has no .claudekeep file", fg='red'))
        sys.exit(1)
    if sections and keep.unknown_sections(sections):
        click.echo(click.style(f"❌ Unknown .claudekeep sections: {', '.join(keep.unknown_sections(sections))}",
                               fg='red'))
        sys.exit(1)

    enumerator = FileEnumerator(
        directory_path,
        ignore_filter=IgnoreFilter.from_folder(directory_path, settings['ignore_file']),
        keep=keep,
        sections=sections,
    )
    entries = list(enumerator.entries())
    to_upload = [candidate for candidate, reason in entries if reason is None]
    skipped = [(candidate, reason) for candidate, reason in entries if reason is not None]

    click.echo(click.style("\n📊 Folder Status", fg='cyan', bold=True))
    click.echo(f"   📁 Folder: {enumerator.root}")
    if keep is not None:
        click.echo(f"   🗂️  Sections: {', '.join(keep.sections) or '(none)'}")

    manifest = UploadManifest(enumerator.root)
    if manifest.last_sync:
        click.echo(f"   ⏰ Last upload: {time_ago(manifest.last_sync)}")
        click.echo(f"   📎 Recorded documents: {len(manifest.files)}")

    click.echo(click.style(f"\n📤 Files to upload ({len(to_upload)}, "
                           f"{format_file_size(sum(c.size_bytes for c in to_upload))}):", fg='green'))
    files_to_show = to_upload if detailed else to_upload[:5]
    for candidate in files_to_show:
        click.echo(f"   + {candidate.relative_path} ({format_file_size(candidate.size_bytes)})")
    if not detailed and len(to_upload) > 5:
        click.echo(click.style(f"   ... and {len(to_upload) - 5} more", dim=True))

    if skipped:
        click.echo(click.style(f"\n⏩ Files skipped ({len(skipped)}):", fg='yellow'))
        files_to_show = skipped if detailed else skipped[:5]
        for candidate, reason in files_to_show:
            click.echo(f"   - {candidate.relative_path} ({reason})")
        if not detailed and len(skipped) > 5:
            click.echo(click.style(f"   ... and {len(skipped) - 5} more", dim=True))


@main.command()
@click.pass_context
def info(ctx):
    """ℹ️  Show information about the saved configuration."""
    config = ConfigManager()

    click.echo(click.style("\nℹ️  Claude Folder Uploader Configuration", fg='cyan', bold=True))

    settings = config.load_config()
    if os.path.exists(config.config_file):
        click.echo(click.style("✅ Settings file: Found", fg='green'))
    else:
        click.echo(click.style("⚠️  Settings file: Not found (defaults in use)", fg='yellow'))
    click.echo(f"   Workers: {settings['workers']}")
    click.echo(f"   Timeout: {settings['timeout']}s")
    click.echo(f"   Ignore file: {settings['ignore_file']}")

    curl_text = config.load_curl()
    if curl_text is None:
        click.echo(click.style("❌ Curl command: Not found", fg='red'))
        return

    try:
        template = parse_curl(curl_text)
    except ParseError as e:
        click.echo(click.style(f"❌ Curl command: Invalid ({e})", fg='red'))
        sys.exit(1)

    click.echo(click.style("✅ Curl command: Found", fg='green'))
    click.echo(click.style("\n📦 Target Information:", fg='cyan'))
    click.echo(f"   Request: {template.method} {template.target_url}")
    click.echo(f"   Body: {template.body_kind}")
    click.echo(f"   Organization: {template.organization_id or 'Unknown'}")
    click.echo(f"   Project: {template.project_id or 'Unknown'}")
    click.echo(f"   Cookies: {', '.join(template.cookies) or 'none'}")
    if ctx.obj['VERBOSE']:
        click.echo(click.style("\n📨 Headers:", fg='cyan'))
        for name, value in template.redacted_headers():
            click.echo(f"   {name}: {value}")


if __name__ == '__main__':
    main(obj={})
