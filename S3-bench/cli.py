import os
import sys
import logging
import argparse

# Required: Use uvloop for better performance
import uvloop

# Add the current directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from configuration import (
    AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_REGION, BUCKET_NAME, S3_ENDPOINT,
    ELASTIC_URL, ELASTIC_INDEX, DEFAULT_CONCURRENCY, DEFAULT_OBJECT_SIZE,
    DEFAULT_NUM_OBJECTS, DEFAULT_OUTPUT_DIR, DRAIN_GRACE_SECONDS, PROMETHEUS_PORT,
)
from common.errors import ConfigError

# Set up logging (only if not already configured)
if not logging.root.handlers:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


class S3BenchmarkCLI:
    """CLI interface for the S3 object storage benchmark."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the argument parser."""
        parser = argparse.ArgumentParser(
            description='Benchmark tool for S3 object storage operations',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Write 100 objects of 10MB, index the results and delete the objects afterwards
  python cli.py -e http://minio:9000 -a KEY -s SECRET -b bench -o 10MB \\
      -u http://elastic:9200 -n 100 -w write -c yes

  # Read 1000 sampled objects under a prefix with 16 workers, flag reads over 50 ms
  python cli.py -b bench -o 10MB -n 1000 -w read -p dataset -l 50 --concurrency 16
            """
        )

        parser.add_argument('-e', '--endpoint-url', default=S3_ENDPOINT or None,
                            help='Endpoint URL for S3 object storage (default: $S3_ENDPOINT)')
        parser.add_argument('-a', '--access-key', default=AWS_ACCESS_KEY_ID,
                            help='Access key for S3 object storage (default: $AWS_ACCESS_KEY_ID)')
        parser.add_argument('-s', '--secret-key', default=AWS_SECRET_ACCESS_KEY,
                            help='Secret key for S3 object storage (default: $AWS_SECRET_ACCESS_KEY)')
        parser.add_argument('-b', '--bucket-name', default=BUCKET_NAME,
                            help='S3 bucket name (default: $BUCKET_NAME)')
        parser.add_argument('-o', '--object-size', default=DEFAULT_OBJECT_SIZE,
                            help=f'S3 object size, e.g. 10MB (default: {DEFAULT_OBJECT_SIZE})')
        parser.add_argument('-u', '--elastic-url', default=ELASTIC_URL,
                            help=f'Elasticsearch cluster URL (default: {ELASTIC_URL})')
        parser.add_argument('-n', '--num-objects', type=int, default=DEFAULT_NUM_OBJECTS,
                            help=f'Number of objects to put/get (default: {DEFAULT_NUM_OBJECTS})')
        parser.add_argument('-w', '--workload', required=True,
                            help='Workload running on S3 - read/write')
        parser.add_argument('-l', '--max-latency', type=float, default=None,
                            help='Max acceptable latency per object operation in ms')
        parser.add_argument('-p', '--prefix', default=None,
                            help='A prefix (directory) located in the bucket')
        parser.add_argument('-c', '--cleanup', default=None,
                            help='Should we cleanup all the objects written? yes/no')

        parser.add_argument('--storage', choices=['s3', 'r2'], default='s3',
                            help='Storage preset to use (default: s3)')
        parser.add_argument('--region', default=None,
                            help=f'Region name (default: {AWS_REGION} for s3, auto for r2)')
        parser.add_argument('--concurrency', type=int, default=DEFAULT_CONCURRENCY,
                            help=f'Number of concurrent workers (default: {DEFAULT_CONCURRENCY})')
        parser.add_argument('--elastic-index', default=ELASTIC_INDEX,
                            help=f'Elasticsearch index (default: {ELASTIC_INDEX})')
        parser.add_argument('--results-dir', default=None,
                            help=f'Also save every metrics document to a Parquet file here '
                                 f'(e.g. {DEFAULT_OUTPUT_DIR})')
        parser.add_argument('--prometheus-port', type=int, default=PROMETHEUS_PORT,
                            help='Expose Prometheus metrics on this port (0 = disabled)')
        parser.add_argument('--drain-grace', type=float, default=DRAIN_GRACE_SECONDS,
                            help=f'Seconds to wait for in-flight operations at shutdown '
                                 f'(default: {DRAIN_GRACE_SECONDS})')

        return parser

    def build_workload(self, args):
        """Turn parsed arguments into a validated WorkloadSpec.

        Raises:
            ConfigError: If any argument is invalid
        """
        from common.sizes import SizeSpec
        from common.workload import Workload, WorkloadSpec, parse_cleanup_flag

        spec = WorkloadSpec(
            bucket=args.bucket_name,
            object_size=SizeSpec.parse(args.object_size),
            object_count=args.num_objects,
            workload=Workload.parse(args.workload),
            prefix=args.prefix,
            max_latency_ms=args.max_latency,
            concurrency=args.concurrency,
            cleanup=parse_cleanup_flag(args.cleanup),
        )
        return spec.validate()

    async def run_benchmark(self, args, spec):
        """Run the benchmark and return the run summary."""
        from common.storage_factory import create_storage_system
        from common.executor import WorkloadExecutor
        from persistence.elastic import ElasticsearchBackend
        from persistence.parquet import ParquetPersistence
        from persistence.telemetry import TelemetrySink

        logger.info(f"=== {spec.workload.value.capitalize()} Benchmark ===")

        storage_system = create_storage_system(
            args.storage,
            endpoint=args.endpoint_url,
            bucket_name=spec.bucket,
            access_key=args.access_key,
            secret_key=args.secret_key,
            region=args.region,
            concurrency=spec.concurrency,
        )

        exporter = None
        if args.prometheus_port:
            from persistence.prom import SimplePrometheusExporter
            exporter = SimplePrometheusExporter(args.prometheus_port)
            exporter.start_server()

        recorder = ParquetPersistence(args.results_dir or DEFAULT_OUTPUT_DIR)

        async with storage_system, ElasticsearchBackend(args.elastic_url, args.elastic_index) as backend:
            if not await backend.ping():
                logger.warning(f"Elasticsearch at {args.elastic_url} did not answer, documents may be dropped")

            executor = WorkloadExecutor(
                spec,
                storage_system,
                TelemetrySink(backend),
                recorder=recorder,
                exporter=exporter,
                drain_grace_seconds=args.drain_grace,
            )
            summary = await executor.run()

        if args.results_dir:
            filepath = recorder.save_to_file(f"{spec.workload.value}")
            if filepath:
                logger.info(f"Saved metrics documents to {filepath}")

        return summary

    def report(self, summary):
        """Log the final summary."""
        logger.info("=== Run Summary ===")
        for key, value in summary.to_dict().items():
            if key == 'stats':
                continue
            logger.info(f"  {key}: {value}")

        stats = summary.stats
        if stats and stats.get('operations'):
            latency = stats['latency_ms']
            logger.info(
                f"  latency ms: avg={latency['avg']:.2f} p50={latency['p50']:.2f} "
                f"p95={latency['p95']:.2f} p99={latency['p99']:.2f}"
            )
            logger.info(f"  avg throughput: {stats['avg_throughput_mbps']:.2f} MB/s")
            logger.info(f"  latency exceeded: {stats['latency_exceeded']}")

        for key, error in summary.cleanup_failures.items():
            logger.error(f"  cleanup failed: {key}: {error}")

    def run(self, args=None):
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)

        try:
            spec = self.build_workload(parsed_args)
        except ConfigError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1

        try:
            summary = uvloop.run(self.run_benchmark(parsed_args, spec))
        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return 1

        self.report(summary)
        return 0 if summary.all_succeeded else 1


def main():
    """Main entry point."""
    cli = S3BenchmarkCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
