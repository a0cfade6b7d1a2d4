"""Names and keys of the files that make up queues on disk."""

from __future__ import annotations

DEFAULT_FILE_EXTENSION = ".fq"


class QueueSegmentFilePathMapper:
    """Maps queues, partitions and segments to file paths and cache keys."""

    def __init__(self, log_path: str, file_extension: str = DEFAULT_FILE_EXTENSION) -> None:
        self.log_path = log_path
        self.file_extension = file_extension

    def get_queue_folder_path(self, queue_name: str) -> str:
        return f"{self.log_path}/{queue_name}"

    def get_partition_folder_key(self, queue_name: str, partition_id: int) -> str:
        return f"{queue_name}_p_{partition_id}"

    def get_partition_folder_path(self, queue_name: str, partition_id: int) -> str:
        return f"{self.log_path}/{queue_name}/partition-{partition_id}"

    def get_file_key(
        self,
        queue_name: str,
        segment_id: int,
        partition: int = -1,
        index_file: bool = False,
        compacted: bool = False,
    ) -> str:
        partition_part = f"p_{partition}_" if partition >= 0 else ""
        index_part = "i_" if index_file else ""
        compacted_part = "_comp" if compacted else ""
        return f"{queue_name}_{partition_part}{index_part}{segment_id}{compacted_part}"

    def get_file_path(
        self,
        queue_name: str,
        segment_id: int,
        partition: int = -1,
        index_file: bool = False,
        compacted: bool = False,
    ) -> str:
        partition_part = f"partition-{partition}/" if partition >= 0 else ""
        index_part = "index_" if index_file else ""
        compacted_part = "_compacted" if compacted else ""
        return (
            f"{self.log_path}/{queue_name}/{partition_part}{index_part}"
            f"{segment_id:020d}{compacted_part}{self.file_extension}"
        )

    def get_compacted_file_key(
        self, queue_name: str, segment_id: int, partition: int = -1, index_file: bool = False
    ) -> str:
        return self.get_file_key(queue_name, segment_id, partition, index_file, True)

    def get_compacted_file_path(
        self, queue_name: str, segment_id: int, partition: int = -1, index_file: bool = False
    ) -> str:
        return self.get_file_path(queue_name, segment_id, partition, index_file, True)

    def get_metadata_file_key(self, queue_name: str) -> str:
        return f"{queue_name}_m"

    def get_metadata_file_path(self, queue_name: str) -> str:
        return f"{self.log_path}/{queue_name}/metadata{self.file_extension}"

    def get_segment_message_map_key(self, queue_name: str, partition: int = -1) -> str:
        partition_part = f"partition-{partition}" if partition >= 0 else ""
        return f"{queue_name}_mmap_{partition_part}"

    def get_segment_message_map_path(self, queue_name: str, partition: int = -1) -> str:
        partition_part = f"/partition-{partition}" if partition >= 0 else ""
        return (
            f"{self.log_path}/{queue_name}{partition_part}"
            f"/messages_location_map{self.file_extension}"
        )

    def get_partition_offsets_path(
        self, queue_name: str, partition: int, temp_file: bool = False
    ) -> str:
        temp_part = "_temp" if temp_file else ""
        return (
            f"{self.log_path}/{queue_name}/partition-{partition}"
            f"/__offsets{temp_part}{self.file_extension}"
        )

    def get_partition_offsets_key(self, queue_name: str, partition: int) -> str:
        return f"{queue_name}_p_{partition}_off"