"""
Command-line interface for PetFoodSim.

Provides commands for simulating a single owner + pet pair and for
running a seeded population batch against one product.
"""

import argparse
import sys
import json
import os
from typing import Any, Dict, List, Optional
import random

import matplotlib
from loguru import logger

from .agents.pet import DENTAL_ISSUES, JOINT_ISSUES, OVERWEIGHT, SENIOR, SENSITIVE_STOMACH, TEAR_STAINS
from .agents.profiles import (
    ActivityLevel,
    DigestiveSystem,
    EatingHabit,
    FeedingPhilosophy,
    IncomeLevel,
    OwnerProfile,
    PersonaPair,
    PetProfile,
    Product,
    Species,
    TargetSpecies,
)
from .analysis.metrics import export_results_csv
from .errors import MalformedRecordError, PetFoodSimError
from .scoring.config import ScoringConfig, load_config
from .simulation.batch import BatchConfig, BatchRunner, PairSimulation, PairSimulator
from .simulation.narratives import FeedingScriptWriter
from .visualization.plots import BatchPlotter


LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def create_sample_product() -> Product:
    """The demonstration product: a mid-priced grain-free cat food."""
    return Product(
        id="petchoice-salmon-grain-free",
        name="PetChoice Fresh Salmon Grain-Free",
        brand="PetChoice",
        category="dry food",
        weight="2kg",
        price=268.0,
        protein_content=38.0,
        fat_content=16.0,
        carb_content=28.0,
        target_species=TargetSpecies.CAT,
        main_ingredients=["fresh salmon", "chicken", "sweet potato", "peas"],
        additives=["probiotics", "omega-3", "taurine"],
        certifications=["AAFCO", "grain-free certified"],
        selling_points=["grain-free", "high protein", "ingredient-safety tested", "no artificial preservatives"],
        packaging="resealable bag",
    )


def create_sample_pairs(n: int, seed: Optional[int] = None) -> List[PersonaPair]:
    """Create sample owner + pet pairs for demonstration."""
    rng = random.Random(seed)

    names = [
        "Lin", "Chen", "Wang", "Zhao", "Liu", "Yang", "Huang", "Zhou",
        "Wu", "Xu", "Sun", "Ma", "Zhu", "Hu", "Guo", "He",
    ]
    pet_names = [
        "Mochi", "Tofu", "Dumpling", "Pepper", "Bean", "Cookie", "Luna", "Milo",
        "Nala", "Oreo", "Peach", "Rice", "Sesame", "Taro", "Yuzu", "Ziggy",
    ]
    cities = ["Shanghai", "Beijing", "Shenzhen", "Hangzhou", "Chengdu", "Wuhan"]
    occupations = ["Engineer", "Teacher", "Designer", "Nurse", "Analyst", "Student", "Manager"]
    concerns = ["ingredient-safety", "formula-scientific-basis", "palatability", "digestion", "value"]
    platforms = ["xiaohongshu", "zhihu", "douyin", "wechat"]
    channels = ["tmall", "jd", "pet store", "vet clinic"]
    cat_breeds = ["British Shorthair", "Ragdoll", "Siamese", "Domestic Shorthair"]
    dog_breeds = ["Corgi", "Shiba Inu", "Poodle", "Golden Retriever"]
    allergens = ["chicken", "beef", "fish", "wheat"]
    health_tags = [SENSITIVE_STOMACH, SENIOR, DENTAL_ISSUES, JOINT_ISSUES, TEAR_STAINS, OVERWEIGHT]

    pairs = []
    for i in range(n):
        owner = OwnerProfile(
            id=f"owner-{i:05d}",
            name=names[i % len(names)],
            age=rng.randint(20, 60),
            gender=rng.choice(["female", "male"]),
            city=rng.choice(cities),
            occupation=rng.choice(occupations),
            income=rng.choice(list(IncomeLevel)),
            feeding_philosophy=rng.choice(list(FeedingPhilosophy)),
            concerns=rng.sample(concerns, k=rng.randint(0, 3)),
            social_platforms=rng.sample(platforms, k=rng.randint(1, 3)),
            purchase_channels=rng.sample(channels, k=rng.randint(1, 2)),
        )

        species = rng.choice(list(Species))
        age = round(rng.uniform(0.5, 15), 1)
        health = rng.sample(health_tags, k=rng.randint(0, 2))
        if age > 10 and SENIOR not in health:
            health.append(SENIOR)
        pet = PetProfile(
            id=f"pet-{i:05d}",
            species=species,
            name=pet_names[i % len(pet_names)],
            breed=rng.choice(cat_breeds if species == Species.CAT else dog_breeds),
            age=age,
            weight=round(rng.uniform(3, 8) if species == Species.CAT else rng.uniform(5, 30), 1),
            health_status=health,
            allergies=rng.sample(allergens, k=1) if rng.random() < 0.15 else [],
            activity_level=rng.choice(list(ActivityLevel)),
            digestive_system=rng.choice(list(DigestiveSystem)),
            eating_habit=rng.choice(list(EatingHabit)),
            current_food=rng.choice(["chicken kibble", "salmon kibble", "canned beef", ""]),
        )

        pairs.append(PersonaPair(id=f"pair-{i:05d}", owner=owner, pet=pet))

    return pairs


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="{time:HH:mm:ss} | {level} | {message}")


def load_json_file(path: str) -> Dict[str, Any]:
    """Read a JSON record file; unreadable JSON is reported as a malformed record."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedRecordError(f"{path}: not valid JSON ({e})") from e


def _load_inputs(args):
    config = load_config(args.config) if args.config else ScoringConfig()
    product = Product.from_dict(load_json_file(args.product)) if args.product else create_sample_product()
    return config, product


def run_simulate(args):
    """Simulate one pair and print every stage of the result."""
    config, product = _load_inputs(args)
    if args.pair:
        pair = PersonaPair.from_dict(load_json_file(args.pair))
    else:
        pair = create_sample_pairs(1, args.seed)[0]

    result = PairSimulator(config).simulate(pair, product)
    script = FeedingScriptWriter(config).write(pair, result.owner_result, result.pet_result, result.analysis)

    if args.json:
        print(json.dumps({
            "pair": pair.to_dict(),
            "product": product.to_dict(),
            "owner": result.owner_result.to_dict(),
            "pet": result.pet_result.to_dict(),
            "interaction": result.analysis.to_dict(),
            "feeding_script": script.to_dict(),
        }, indent=2, ensure_ascii=False))
        return 0

    print(_format_pair(result))
    print()
    print("FEEDING SCRIPT")
    print("-" * 40)
    for i, scene in enumerate(script.scenes, 1):
        print(f"Scene {i}: {scene.action}")
        print(f"  Pet: {scene.pet_reaction}")
        print(f"  Owner: {scene.owner_emotion}")
        if scene.dialogue:
            print(f"  {scene.dialogue}")
    print(f"Mood: {script.overall_mood}")
    print(f"Marketing insight: {script.marketing_insight}")
    return 0


def _format_pair(result: PairSimulation) -> str:
    owner = result.owner_result
    pet = result.pet_result
    analysis = result.analysis
    lines = [
        "=" * 60,
        f"PAIR {result.pair.id} vs PRODUCT {analysis.product_id}",
        "=" * 60,
        "",
        "OWNER",
        "-" * 40,
        f"Philosophy: {result.pair.owner.feeding_philosophy.value}",
        f"Initial reaction: {owner.initial_reaction}",
        f"Price perception: {owner.price_perception.level.value} ({owner.price_perception.feedback})",
        f"Trust score: {owner.trust.score:.0f}",
        f"Intent: {owner.purchase_intent.value} ({owner.intent_score:.0f})",
        f"Decision: {owner.final_decision.value}",
        "Reasoning:",
    ]
    lines.extend(f"  {i}. {step}" for i, step in enumerate(owner.reasoning, 1))
    lines.extend([
        "",
        "PET",
        "-" * 40,
        f"Smell attraction: {pet.smell_attraction:.0f}",
        f"Taste acceptance: {pet.taste_acceptance:.0f}",
        f"Digestive risk: {pet.digestive_risk.value}",
        f"Expected behavior: {pet.expected_behavior}",
        f"Long-term suitability: {pet.long_term_suitability}",
        "",
        "INTERACTION",
        "-" * 40,
        f"Scenario: {analysis.scenario.value} - {analysis.scenario_description}",
        f"Repurchase rate: {analysis.repurchase_rate}%",
        f"NPS: {analysis.nps_score}",
        f"Churn risk: {analysis.churn_risk.value}",
        f"Combined verdict: {analysis.combined_decision.value} (match {analysis.match_score:.1f})",
        f"Insight: {analysis.key_insight}",
        f"Recommendation: {analysis.recommendation}",
    ])
    return "\n".join(lines)


def run_batch_command(args):
    """Run a seeded population batch and report the statistics."""
    config, product = _load_inputs(args)

    print(f"Creating {args.samples} sample pairs...")
    pairs = create_sample_pairs(args.samples, args.seed)

    batch_config = BatchConfig(max_workers=args.workers, chunk_size=args.chunk_size)
    runner = BatchRunner(config, batch_config)

    results: List[PairSimulation] = []
    if args.output_dir:
        runner.on_result(results.append)

    def on_progress(processed, total):
        logger.info(f"batch_progress | processed={processed}/{total}")

    runner.on_progress(on_progress)

    print(f"Running batch against {product.id}...")
    stats = runner.run(pairs, product)

    plotter = BatchPlotter(args.output_dir or ".")
    report = plotter.create_summary_report(stats)
    print("\n" + report)

    if args.output_dir:
        os.makedirs(args.output_dir, exist_ok=True)

        stats_path = os.path.join(args.output_dir, "batch_statistics.json")
        with open(stats_path, "w", encoding="utf-8") as f:
            f.write(stats.to_json())
        print(f"\nStatistics saved to: {stats_path}")

        # Callbacks fire per chunk in completion order; sort for a stable file
        results.sort(key=lambda r: r.pair.id)
        csv_path = os.path.join(args.output_dir, "pair_results.csv")
        export_results_csv((r.to_row() for r in results), csv_path)
        print(f"Pair results saved to: {csv_path}")

        report_path = os.path.join(args.output_dir, "summary_report.txt")
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(report)
        print(f"Report saved to: {report_path}")

        if not args.no_plots:
            for path in plotter.save_all(stats):
                print(f"Chart saved to: {path}")

    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="petfood-sim",
        description="""
PetFoodSim - Persona-driven concept testing for pet food products

Simulates how owner + pet persona pairs react to a product and turns
many individual reactions into population-level market statistics.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="INFO",
        help="Log level for stderr output (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Shared inputs
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Random seed for sample generation",
    )
    common.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON file overriding scoring thresholds and weights",
    )
    common.add_argument(
        "--product",
        type=str,
        default=None,
        help="JSON file describing the product (default: built-in sample)",
    )

    simulate_parser = subparsers.add_parser(
        "simulate",
        parents=[common],
        help="Simulate a single owner + pet pair",
    )
    simulate_parser.add_argument(
        "--pair",
        type=str,
        default=None,
        help="JSON file describing the persona pair (default: seeded sample)",
    )
    simulate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON",
    )

    batch_parser = subparsers.add_parser(
        "batch",
        parents=[common],
        help="Run a population batch against one product",
    )
    batch_parser.add_argument(
        "-n", "--samples",
        type=int,
        default=1000,
        help="Number of sample pairs to generate (default: 1000)",
    )
    batch_parser.add_argument(
        "-w", "--workers",
        type=int,
        default=4,
        help="Worker threads (default: 4)",
    )
    batch_parser.add_argument(
        "--chunk-size",
        type=int,
        default=250,
        help="Pairs per work chunk (default: 250)",
    )
    batch_parser.add_argument(
        "-o", "--output-dir",
        type=str,
        default=None,
        help="Directory for output files",
    )
    batch_parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip chart rendering when writing outputs",
    )

    # Version command
    parser.add_argument(
        "-v", "--version",
        action="store_true",
        help="Show version information",
    )

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    matplotlib.use("Agg")

    if args.version:
        from . import __version__
        print(f"PetFoodSim v{__version__}")
        return 0

    try:
        if args.command == "simulate":
            return run_simulate(args)
        if args.command == "batch":
            return run_batch_command(args)
    except PetFoodSimError as e:
        logger.error(f"command_failed | command={args.command} | error={e}")
        return 2

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
