import argparse
import sys
import os
import logging

# Ensure project root is in path so we can import 'maze_trace' package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

def setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

def add_maze_args(parser):
    parser.add_argument("--width", type=int, default=20, help="Maze Width")
    parser.add_argument("--height", type=int, default=20, help="Maze Height")
    parser.add_argument("--seed", type=int, default=None, help="Random Seed")

def build_parser():
    parser = argparse.ArgumentParser(description="Maze Trace: maze generation with step-by-step BFS/DFS")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate Command
    gen_parser = subparsers.add_parser("generate", help="Generate a maze and print it")
    add_maze_args(gen_parser)

    # Solve Command
    solve_parser = subparsers.add_parser("solve", help="Generate a maze and trace a search through it")
    add_maze_args(solve_parser)
    solve_parser.add_argument("--algo", type=str, default="bfs", choices=["bfs", "dfs"], help="Search algorithm")
    solve_parser.add_argument("--delay", type=float, default=0, help="Tick delay in milliseconds")
    solve_parser.add_argument("--record-events", type=str, help="Save the visitation trace to a binary file")

    # View Command
    view_parser = subparsers.add_parser("view", help="Open the interactive viewer")
    add_maze_args(view_parser)
    view_parser.add_argument("--delay", type=float, default=100, help="Tick delay in milliseconds")

    return parser

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger("maze_trace")

    if args.command is None:
        parser.print_help()
        return 0

    logger.debug(f"Running command: {args.command}")

    if args.command == "generate":
        from maze_trace.algo.backtracker import generate_maze
        grid = generate_maze(args.width, args.height, seed=args.seed)
        print(grid.render())

    elif args.command == "solve":
        from maze_trace.algo.backtracker import generate_maze
        from maze_trace.algo.search import start_search
        from maze_trace.core.events import EventWriter, VisitEvent, FOUND
        from maze_trace.core.scheduler import StepScheduler

        grid = generate_maze(args.width, args.height, seed=args.seed)
        logger.info(f"Solving {args.width}x{args.height} maze with {args.algo.upper()}...")

        evt_writer = None
        if args.record_events:
            evt_writer = EventWriter(args.record_events)
            logger.info(f"Recording events to {args.record_events}...")

        def on_event(event):
            if isinstance(event, VisitEvent):
                print(f"visit {event.x},{event.y}{' goal' if event.is_goal else ''}")
            if evt_writer:
                evt_writer.handle(event)

        try:
            if evt_writer:
                evt_writer.write_header(grid.width, grid.height)
            session = start_search(args.algo, grid, (0, 1))
            scheduler = StepScheduler()
            handle = scheduler.run(session, on_event, args.delay)
            status = scheduler.run_until_complete(handle)
        finally:
            if evt_writer:
                evt_writer.close()

        print(grid.render())
        if status == FOUND:
            print(f"Path found! Length: {len(session.path())}")
        else:
            print("No path to the end.")

        if evt_writer:
            logger.info(f"Saved {evt_writer.record_count} events to {args.record_events}")

    elif args.command == "view":
        from maze_trace.viz.renderer import Renderer
        renderer = Renderer(args.width, args.height, seed=args.seed, tick_delay_ms=args.delay)
        renderer.init_window()
        renderer.run_loop()

    return 0

if __name__ == "__main__":
    sys.exit(main())
