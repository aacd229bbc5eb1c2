"""qrstyle CLI: render styled QR codes and build structured payloads from the command line."""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from PIL import Image

from qrstyle.config import EngineConfig
from qrstyle.errors import QRStyleError
from qrstyle.logging import audit, get_logger, setup_logging
from qrstyle.styles import EyeShape, FrameSpec, GradientSpec, GradientType, LogoSpec, Shape, StyleRequest

log = get_logger("cli")

EXIT_STYLE_ERROR = 2


def _output_path(parser: argparse.ArgumentParser, value: str) -> Path:
    path = Path(value)
    if path.suffix.lower() != ".png":
        parser.error(f"output must be a .png file (got {value!r}); SVG and other formats are not produced")
    return path


def _style_from_args(args) -> StyleRequest:
    gradient = None
    if args.gradient:
        gradient = GradientSpec(
            colors=tuple(args.gradient),
            type=args.gradient_type,
            angle_degrees=args.gradient_angle,
        )

    logo = None
    if args.logo:
        logo = LogoSpec(
            source=Path(args.logo),
            size_percent=args.logo_size,
            margin_percent=args.logo_margin,
            corner_radius_px=args.logo_radius,
        )

    frame = None
    if args.frame_text is not None:
        frame = FrameSpec(
            text=args.frame_text,
            text_color=args.frame_color,
            background_color=args.frame_background,
        )

    return StyleRequest(shape=args.shape, eye_shape=args.eye_shape,
                        gradient=gradient, logo=logo, frame=frame)


def _engine_config(args) -> EngineConfig:
    config = EngineConfig.from_env()
    if args.workers:
        config = replace(config, workers=args.workers)
    return config


def _report(args, rendered, text: str) -> bool:
    """Print the optional plausibility check and decoder round trip for one code."""
    if args.check:
        from qrstyle.heuristic import assess_scan_plausibility, midpoint_threshold

        report = assess_scan_plausibility(
            rendered.image, rendered.module_count, rendered.quiet_zone_px,
            top_offset=rendered.frame_px,
            dark_threshold=midpoint_threshold(rendered.dark_color, rendered.light_color),
        )
        print(f"  Plausibility: {report.summary()}")

    ok = True
    if args.verify:
        from qrstyle.verify import verify

        for r in verify(rendered.image, expected_data=text):
            status = "PASS" if r.success else "FAIL"
            ok = ok and r.success
            print(f"  [{r.decoder:12s}] {status} | {r.decode_time_ms:6.1f}ms | {r.decoded_data or r.error}")
    return ok


def _render_and_save(args, text: str, output: Path):
    from qrstyle.engine import render, save_png

    rendered = render(
        text,
        _style_from_args(args),
        ecc=args.ecc,
        dark_color=args.color,
        light_color=args.background,
        box_size=args.box_size,
        border=args.border,
        version=args.version,
        config=_engine_config(args),
    )
    save_png(rendered, output)
    print(f"Generated: {output} ({rendered.width}x{rendered.height}, "
          f"version {rendered.version}, ECC {rendered.ecc}, shape {args.shape})")
    return _report(args, rendered, text)


def cmd_render(args):
    """Render a styled QR code for arbitrary text."""
    return _render_and_save(args, args.text, args.output)


def cmd_wifi(args):
    """Render a WiFi network QR code."""
    from qrstyle.payloads import build_wifi_payload

    payload = build_wifi_payload(args.ssid, args.password, security=args.security, hidden=args.hidden)
    return _render_and_save(args, payload, args.output)


def cmd_vcard(args):
    """Render a contact card QR code."""
    from qrstyle.payloads import Contact, build_vcard_payload

    contact = Contact(
        first_name=args.first_name, last_name=args.last_name,
        organization=args.organization, phone=args.phone,
        email=args.email, url=args.url, address=args.address,
    )
    return _render_and_save(args, build_vcard_payload(contact), args.output)


def cmd_mailto(args):
    """Render an email QR code."""
    from qrstyle.payloads import build_mailto_payload

    return _render_and_save(args, build_mailto_payload(args.email, args.subject, args.body), args.output)


def cmd_batch(args):
    """Render one QR code per line of an input file."""
    from qrstyle.engine import render_batch, save_png

    lines = Path(args.input).read_text(encoding="utf-8").splitlines()
    out_dir = Path(args.output_dir)

    def progress(current, total):
        print(f"  [{current}/{total}]")

    results = render_batch(
        lines, _style_from_args(args), on_progress=progress,
        ecc=args.ecc, dark_color=args.color, light_color=args.background,
        box_size=args.box_size, border=args.border, version=args.version,
        config=_engine_config(args),
    )
    ok = len(results) > 0
    for result in results:
        path = save_png(result.rendered, out_dir / result.filename)
        print(f"Generated: {path}")
        ok = _report(args, result.rendered, result.content) and ok
    print(f"Generated {len(results)} of {len(lines)} codes in {out_dir}")
    return ok


def cmd_check(args):
    """Advisory finder check of an existing PNG."""
    from qrstyle.heuristic import assess_scan_plausibility

    img = Image.open(args.image)
    report = assess_scan_plausibility(img, args.modules, args.quiet_zone, top_offset=args.frame_px,
                                      dark_threshold=args.dark_threshold)
    print(report.summary())
    return report.plausible


def _add_style_args(p: argparse.ArgumentParser, default_output: str | None = "output/qr.png"):
    if default_output is not None:
        p.add_argument("-o", "--output", default=default_output, help="Output PNG path")
    p.add_argument("-e", "--ecc", default="M", choices=["L", "M", "Q", "H"], help="Error correction level")
    p.add_argument("-v", "--version", type=int, default=None, help="QR version 1-40 (auto if omitted)")
    p.add_argument("--box-size", type=int, default=10, help="Module pixel size")
    p.add_argument("--border", type=int, default=4, help="Quiet zone modules")
    p.add_argument("--color", default="#000000", help="Dark module colour")
    p.add_argument("--background", default="#FFFFFF", help="Light module colour")
    p.add_argument("--shape", default="square", choices=[s.value for s in Shape], help="Module glyph")
    p.add_argument("--eye-shape", default="square", choices=[e.value for e in EyeShape],
                   help="Finder style (needs QRSTYLE_STYLE_EYES=1)")
    p.add_argument("--gradient", nargs="+", default=None, metavar="COLOR", help="Gradient colours (2+)")
    p.add_argument("--gradient-type", default="linear", choices=[t.value for t in GradientType])
    p.add_argument("--gradient-angle", type=float, default=0.0, help="Linear gradient angle in degrees")
    p.add_argument("--logo", default=None, help="Logo image path")
    p.add_argument("--logo-size", type=float, default=15, help="Logo size, percent of the code (5-30)")
    p.add_argument("--logo-margin", type=float, default=10, help="Plate margin, percent of the logo")
    p.add_argument("--logo-radius", type=int, default=8, help="Plate corner radius in pixels")
    p.add_argument("--frame-text", default=None, help="Caption drawn in a band above the code")
    p.add_argument("--frame-color", default="#000000", help="Caption text colour")
    p.add_argument("--frame-background", default="#FFFFFF", help="Caption band colour")
    p.add_argument("--workers", type=int, default=None, help="Threads for the glyph renderer")
    p.add_argument("--check", action="store_true", help="Print the advisory finder check")
    p.add_argument("--verify", action="store_true", help="Decode the result with OpenCV")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrstyle", description="Styled QR code renderer")

    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- render ---
    p_render = subparsers.add_parser("render", help="Render a styled QR code")
    p_render.add_argument("text", help="Text or URL to encode")
    _add_style_args(p_render)

    # --- wifi ---
    p_wifi = subparsers.add_parser("wifi", help="Render a WiFi network QR code")
    p_wifi.add_argument("ssid", help="Network name")
    p_wifi.add_argument("--password", default="", help="Network password")
    p_wifi.add_argument("--security", default="WPA", choices=["WPA", "WEP", "nopass"])
    p_wifi.add_argument("--hidden", action="store_true", help="Network does not broadcast its SSID")
    _add_style_args(p_wifi, "output/wifi.png")

    # --- vcard ---
    p_vcard = subparsers.add_parser("vcard", help="Render a contact card QR code")
    for flag in ("first-name", "last-name", "organization", "phone", "email", "url", "address"):
        p_vcard.add_argument(f"--{flag}", default="")
    _add_style_args(p_vcard, "output/vcard.png")

    # --- mailto ---
    p_mail = subparsers.add_parser("mailto", help="Render an email QR code")
    p_mail.add_argument("email", help="Recipient address")
    p_mail.add_argument("--subject", default="")
    p_mail.add_argument("--body", default="")
    _add_style_args(p_mail, "output/mailto.png")

    # --- batch ---
    p_batch = subparsers.add_parser("batch", help="Render one QR code per input line")
    p_batch.add_argument("input", help="Text file, one payload per line")
    p_batch.add_argument("-d", "--output-dir", default="output/batch", help="Directory for the PNGs")
    _add_style_args(p_batch, default_output=None)

    # --- check ---
    p_check = subparsers.add_parser("check", help="Advisory finder check of a QR PNG")
    p_check.add_argument("image", help="Path to QR code image")
    p_check.add_argument("--modules", type=int, required=True, help="Modules per side")
    p_check.add_argument("--quiet-zone", type=int, default=0, help="Quiet zone in pixels")
    p_check.add_argument("--frame-px", type=int, default=0, help="Caption band height above the code")
    p_check.add_argument("--dark-threshold", type=float, default=128.0,
                         help="Brightness below which a pixel counts as dark")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else "INFO"
    setup_logging(level=level, log_file=args.log_file)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    if getattr(args, "output", None) is not None:
        args.output = _output_path(parser, args.output)

    commands = {
        "render": cmd_render,
        "wifi": cmd_wifi,
        "vcard": cmd_vcard,
        "mailto": cmd_mailto,
        "batch": cmd_batch,
        "check": cmd_check,
    }
    try:
        ok = commands[args.command](args)
    except QRStyleError as e:
        print(f"error: {e}", file=sys.stderr)
        audit("cli.failed", logger=log, command=args.command, error=type(e).__name__)
        return EXIT_STYLE_ERROR

    audit("cli.done", logger=log, command=args.command, ok=ok)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
