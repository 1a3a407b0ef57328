#!/usr/bin/env python3
"""
VisionAI Eyewear Stylist - CLI

Puts eyeglasses on a portrait using Gemini image generation:
- Consultant mode: Gemini picks a style that suits the face
- Try-on mode: the glasses from a reference photo are placed on the face

Usage:
    python main.py <face.jpg> [--glasses <glasses.jpg>] [--style "<text>"] [--output-dir <dir>]

Example:
    python main.py selfies/me.jpg
    python main.py selfies/me.jpg --glasses frames/aviator.png
    python main.py selfies/me.jpg --style "round gold wire frames"
"""

import os
import sys
from datetime import datetime
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from services.utils import validate_image_path, read_local_image, decode_data_url, save_binary_file
from services.image_converter import validate_and_prepare_image
from services.stylist_controller import StylistController, StylistError
from models.schemas import Mode


def print_banner():
    """Print a nice ASCII banner"""
    banner = """
╔═══════════════════════════════════════════════════════╗
║                                                       ║
║              👓 VISIONAI EYEWEAR STYLIST 👓           ║
║                                                       ║
║              Powered by Google Gemini                 ║
║                                                       ║
╚═══════════════════════════════════════════════════════╝
"""
    print(banner)


def print_usage():
    """Print usage instructions"""
    print("\nUsage:")
    print("  python main.py <face.jpg> [--glasses <glasses.jpg>] [--style \"<text>\"] [--output-dir <dir>]")
    print("\nExamples:")
    print("  python main.py selfies/me.jpg")
    print("  python main.py selfies/me.jpg --glasses frames/aviator.png")
    print("  python main.py selfies/me.jpg --style \"round gold wire frames\"")
    print("\nArguments:")
    print("  face image         Photo of the person to style")
    print("  --glasses IMAGE    (Optional) Photo of specific glasses to try on")
    print("  --style TEXT       (Optional) Follow-up style change, e.g. a frame colour")
    print("  --output-dir DIR   Where to write results (default: output)")
    print("\nRequirements:")
    print("  - Valid image formats: jpg, jpeg, png, gif, bmp, webp, heic, heif")
    print("  - API key set in .env file:")
    print("    • GOOGLE_API_KEY")
    print()


def check_environment():
    """
    Check that required environment variables are set.

    Returns:
        bool: True if the API key is set, False otherwise
    """
    if os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY"):
        return True

    print("❌ Error: Missing required environment variable:")
    print("   - GOOGLE_API_KEY")
    print("\nPlease set it in your .env file.")
    return False


def parse_args(args):
    """
    Parse command line arguments.

    Returns:
        dict with 'face', 'glasses', 'style' and 'output_dir'

    Raises:
        ValueError: On missing option values or a missing face image
    """
    options = {"face": None, "glasses": None, "style": None, "output_dir": "output"}
    flags = {"--glasses": "glasses", "--style": "style", "--output-dir": "output_dir"}

    i = 0
    while i < len(args):
        if args[i] in flags:
            if i + 1 >= len(args):
                raise ValueError(f"{args[i]} requires a value")
            options[flags[args[i]]] = args[i + 1]
            i += 2
        elif options["face"] is None:
            options["face"] = args[i]
            i += 1
        else:
            raise ValueError(f"Unexpected argument: {args[i]}")

    if options["face"] is None:
        raise ValueError("No face image provided")

    return options


def load_image(path):
    validate_image_path(path)
    image_bytes, _ = read_local_image(path)
    return validate_and_prepare_image(image_bytes, os.path.basename(path))


def write_result(data_url, output_dir, label):
    os.makedirs(output_dir, exist_ok=True)
    image_bytes, _ = decode_data_url(data_url)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return save_binary_file(os.path.join(output_dir, f"eyewear_{label}_{timestamp}.png"), image_bytes)


def main(argv=None, controller=None):
    """Main CLI orchestrator"""
    print_banner()
    args = sys.argv[1:] if argv is None else argv

    if not args:
        print("❌ Error: No face image provided")
        print_usage()
        return 1

    if args[0] in ['-h', '--help', 'help']:
        print_usage()
        return 0

    try:
        options = parse_args(args)

        if controller is None:
            print("\n🔑 Checking environment variables...")
            if not check_environment():
                return 1
            print("   ✓ API key found")
            controller = StylistController()

        print("\n📋 Step 1: Loading images...")
        controller.upload_subject_image(load_image(options["face"]))
        print(f"   ✓ Face image loaded: {options['face']}")

        if options["glasses"]:
            controller.upload_reference_image(load_image(options["glasses"]))
            controller.set_mode(Mode.TRY_ON)
            print(f"   ✓ Glasses image loaded: {options['glasses']}")
        else:
            controller.set_mode(Mode.CONSULTANT)

        print(f"\n🎨 Step 2: Generating ({controller.mode.value})...")
        result = controller.generate()
        saved = [write_result(result, options["output_dir"], controller.mode.value.lower())]

        if options["style"]:
            print(f"\n✏️  Step 3: Applying style change: {options['style']}")
            reply = controller.request_visualization(options["style"])
            print(f"   {reply.text}")
            if controller.generated_image != result:
                saved.append(write_result(controller.generated_image, options["output_dir"], "restyle"))

        print("\n" + "=" * 55)
        print(f"✅ SUCCESS! {len(saved)} image(s) generated!")
        print("=" * 55)
        for path in saved:
            print(f"\n📁 {path}")
        print()

        return 0

    except FileNotFoundError as e:
        print(f"\n❌ Error: {e}")
        print("   Please check that all image paths are correct.")
        return 1

    except (ValueError, StylistError) as e:
        print(f"\n❌ Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
